"""YAML front matter parsing for corpus markdown files.

Front matter is optional and delimited by '---' lines at the very top of the
file:

    ---
    title: 泛型
    description: 仓颉泛型介绍
    keywords: [generic, 泛型]
    ---
    # 泛型
"""

import logging
import re
from typing import Any

import yaml


logger = logging.getLogger(__name__)

DELIMITER = "---"

_FRONT_MATTER_RE = re.compile(
    rf"^{re.escape(DELIMITER)}[ \t]*\r?\n(.*?)\r?\n{re.escape(DELIMITER)}[ \t]*(?:\r?\n|$)",
    re.DOTALL,
)


def parse_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from markdown content.

    Returns:
        Tuple of (front_matter_dict, markdown_content). Content without front
        matter, or with front matter that is not a YAML mapping, comes back
        unchanged with an empty dict.
    """
    match = _FRONT_MATTER_RE.match(content)
    if not match:
        return {}, content

    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        logger.debug("Ignoring unparsable front matter: %s", exc)
        return {}, content

    if not isinstance(metadata, dict):
        return {}, content

    return metadata, content[match.end() :]


def front_matter_keywords(metadata: dict[str, Any]) -> list[str]:
    """Normalize a `keywords` entry given as a list or a comma-separated string."""
    raw = metadata.get("keywords")
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        return []
    return [item.strip().lower() for item in items if item and item.strip()]
