"""Enumeration of EC2 security groups."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from botocore.exceptions import BotoCoreError, ClientError

from aws_netsec_compliance.errors import ResourceFetchError

logger = logging.getLogger(__name__)


class SecurityGroupSupplier:
    """Yields raw security group dicts page by page.

    Groups from pages that were read before a failure are yielded before
    ``ResourceFetchError`` is raised, so callers can process partial data.
    """

    def __init__(self, client, filters: list[dict[str, object]] | None = None) -> None:
        self._client = client
        self._filters = filters or []

    def __iter__(self) -> Iterator[dict[str, object]]:
        kwargs: dict[str, object] = {}
        if self._filters:
            kwargs["Filters"] = self._filters
        try:
            paginator = self._client.get_paginator("describe_security_groups")
            for page_number, page in enumerate(paginator.paginate(**kwargs), start=1):
                groups = page.get("SecurityGroups", []) or []
                logger.debug("Fetched %d security groups (page %d)", len(groups), page_number)
                yield from groups
        except (ClientError, BotoCoreError) as exc:
            raise ResourceFetchError(f"unable to describe security groups: {exc}") from exc
