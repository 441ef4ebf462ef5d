"""Label sets attached to evidence and used to derive stream identity."""

from __future__ import annotations

from collections.abc import Mapping

LABEL_PROVIDER = "provider"
LABEL_TYPE = "type"
LABEL_SERVICE = "service"
LABEL_GROUP_ID = "group-id"
LABEL_VPC_ID = "_vpc-id"
LABEL_POLICY = "_policy"
LABEL_POLICY_PATH = "_policy_path"

# Labels that together identify one evaluation stream.
STREAM_IDENTITY_LABELS = (LABEL_TYPE, LABEL_POLICY_PATH, LABEL_GROUP_ID)


def merge_labels(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge label layers into a new dict; later layers win on key collision."""
    merged: dict[str, str] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged
