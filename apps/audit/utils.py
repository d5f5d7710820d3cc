"""
Pure helpers for the Audit module (no DB access).
"""

from typing import Any, Dict, Optional


def diff_dicts(
    before: Optional[Dict[str, Any]],
    after: Optional[Dict[str, Any]],
) -> Dict[str, Dict[str, Any]]:
    """
    Compute field-level diff between two snapshots.

    Returns:
    {
        "field_name": {"before": x, "after": y}
    }
    """
    before = before if isinstance(before, dict) else {}
    after = after if isinstance(after, dict) else {}

    diff = {}
    for key in sorted(set(before.keys()) | set(after.keys())):
        if before.get(key) != after.get(key):
            diff[key] = {
                "before": before.get(key),
                "after": after.get(key),
            }

    return diff
