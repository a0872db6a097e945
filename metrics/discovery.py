import logging
from typing import List

from .paginator import paginate
from config import LAUNCH_TYPE, LIST_SERVICES_PAGE_SIZE

logger = logging.getLogger(__name__)


def service_name_from_arn(arn: str) -> str:
    """Bare service name: the last '/' segment of a service ARN."""
    return arn.split('/')[-1]


def discover_services(ecs, cluster: str,
                      launch_type: str = LAUNCH_TYPE,
                      page_size: int = LIST_SERVICES_PAGE_SIZE) -> List[str]:
    """
    List every service of `launch_type` running in `cluster`.

    Returns bare service names, deduplicated and sorted ascending. Raises
    PaginationError if any page cannot be fetched.
    """
    arns = paginate(
        ecs.list_services,
        {'cluster': cluster, 'launchType': launch_type, 'maxResults': page_size},
        items_key='serviceArns',
        token_key='nextToken',
    )
    names = sorted({service_name_from_arn(arn) for arn in arns if arn})
    logger.debug(f"Discovered {len(names)} {launch_type} service(s) in {cluster}: {names}")
    return names
