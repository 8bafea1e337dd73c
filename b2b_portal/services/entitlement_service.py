"""
B2B entitlement resolution from Shopify customer tags.

Tags arrive as a single comma-separated string. Two families grant access:
- ``b2b<NN>``: the suffix is the discount percentage (e.g. ``b2b30``).
- ``ima...<NN>``: IMA agreement tags, the trailing digits are the
  percentage (e.g. ``imab2b40``).

The first tag of a family decides: a malformed suffix on it means no
entitlement, later tags of the same family are not consulted.
"""
import re
from typing import List, Optional

B2B_CANDIDATE = re.compile(r'^b2b\d')
B2B_SUFFIX = re.compile(r'^b2b(\d+)$')
IMA_CANDIDATE = re.compile(r'^ima.*\d')
TRAILING_DIGITS = re.compile(r'(\d+)$')

MAX_DISCOUNT = 100


def split_tags(tags: Optional[str]) -> List[str]:
    """Split a raw tag string into trimmed, lowercase tags."""
    if not tags:
        return []
    return [tag.strip().lower() for tag in tags.split(',') if tag.strip()]


def resolve_discount(tags: Optional[str]) -> Optional[int]:
    """
    Derive the B2B discount percentage from a customer's tags.

    ``b2b`` tags win over ``ima`` tags regardless of their position.
    Returns None when no tag grants an entitlement, when the deciding tag
    has a malformed number, or when the value falls outside 0..100.
    """
    tag_list = split_tags(tags)

    b2b_tag = next((tag for tag in tag_list if B2B_CANDIDATE.match(tag)), None)
    if b2b_tag is not None:
        match = B2B_SUFFIX.match(b2b_tag)
        return _as_percentage(match.group(1)) if match else None

    ima_tag = next((tag for tag in tag_list if IMA_CANDIDATE.match(tag)), None)
    if ima_tag is not None:
        match = TRAILING_DIGITS.search(ima_tag)
        return _as_percentage(match.group(1)) if match else None

    return None


def has_ima_tag(tags: Optional[str]) -> bool:
    """True when the customer holds any ``ima`` agreement tag."""
    return any(tag.startswith('ima') for tag in split_tags(tags))


def discount_tag(tags: Optional[str]) -> Optional[str]:
    """Return the first ``b2b`` tag, stored on the profile for reference."""
    for tag in split_tags(tags):
        if tag.startswith('b2b'):
            return tag
    return None


def _as_percentage(digits: str) -> Optional[int]:
    value = int(digits)
    if value > MAX_DISCOUNT:
        return None
    return value
