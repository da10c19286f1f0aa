"""
XFDF Utilities.

Helpers for the few facts the sync core reads out of an otherwise opaque
XFDF payload.
"""

import logging
import re

logger = logging.getLogger(__name__)

# XFDF stores the page as a 0-based attribute on the annotation element
_PAGE_ATTR = re.compile(r'page="(?P<page>\d+)"')


def page_number_from_xfdf(xfdf: str | None) -> int | None:
    """
    Extract the 1-based page number from an XFDF payload.

    Args:
        xfdf: Serialized annotation markup

    Returns:
        Page number (XFDF page + 1), or None if the payload has no page
    """
    if not xfdf:
        return None
    match = _PAGE_ATTR.search(xfdf)
    if match is None:
        logger.debug("No page attribute in XFDF payload")
        return None
    return int(match.group("page")) + 1
