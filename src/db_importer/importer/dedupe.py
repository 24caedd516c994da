"""Post-local module instance deduplication for link rows.

A ``post_modules`` link row points a post at a ``module_instances`` row.
Instances scoped to a single post must not be shared: when a second post
claims the same post-local instance, the instance is cloned for that post
and the link row is rewritten to point at the clone.

Usage:
    dedupe = ModuleInstanceDeduplicator(table_rows(snapshot, "module_instances"))
    for link in links:
        link = await dedupe.prepare_link(link, insert_clone, linked_module)
"""

import copy
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from db_importer.importer.registry import CLONE_RESET_FIELDS

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"

InsertClone = Callable[[dict], Awaitable[bool]]
LinkedModule = Callable[[dict], Awaitable[Any]]


def new_instance_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModuleInstanceDeduplicator:
    """Track which post first claimed each post-local instance during a run.

    Args:
        instances: ``module_instances`` rows from the snapshot.
        id_factory: Generates ids for clones.
        clock: Returns the timestamp written to clone ``created_at`` /
            ``updated_at``.
    """

    def __init__(
        self,
        instances: Iterable[dict],
        id_factory: Callable[[], Any] = new_instance_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._index: dict[Any, dict] = {
            row["id"]: row for row in instances if row.get("id") is not None
        }
        self._claims: dict[Any, Any] = {}
        self._clones: dict[Any, list[Any]] = {}
        self._id_factory = id_factory
        self._clock = clock

    @property
    def clones(self) -> dict[Any, list[Any]]:
        """Original instance id -> ids of the clones created from it."""
        return {k: list(v) for k, v in self._clones.items()}

    def instance(self, instance_id: Any) -> dict | None:
        """Return the indexed instance row (including clones), if known."""
        return self._index.get(instance_id)

    def _clone(self, original: dict, post_id: Any) -> dict:
        clone = copy.deepcopy(original)
        now = self._clock()
        clone["id"] = self._id_factory()
        clone["post_id"] = post_id
        for field in CLONE_RESET_FIELDS:
            if field in clone:
                clone[field] = None
        clone["created_at"] = now
        clone["updated_at"] = now
        return clone

    async def prepare_link(
        self,
        link_row: dict,
        insert_clone: InsertClone,
        linked_module: LinkedModule | None = None,
    ) -> dict:
        """Return the link row to write, cloning its instance when already claimed.

        Args:
            link_row: ``post_modules`` row (``post_id``, ``module_id``, ...).
            insert_clone: Coroutine function that writes a clone row to the
                instance table and returns whether it was written.  Called
                before this method returns.
            linked_module: Coroutine function returning the ``module_id`` the
                target already links for this link row, or ``None``.  When it
                returns an id no clone is made and the link keeps that id, so
                re-running an import does not create a clone per run.

        Returns:
            *link_row* unchanged, or a copy pointing at the instance to use.
        """
        instance_id = link_row.get("module_id")
        post_id = link_row.get("post_id")
        instance = self._index.get(instance_id)

        if instance is None or instance.get("scope") == GLOBAL_SCOPE:
            return link_row

        claimed_by = self._claims.setdefault(instance_id, post_id)
        if claimed_by == post_id:
            return link_row

        if linked_module is not None:
            existing = await linked_module(link_row)
            if existing is not None:
                logger.debug(
                    f"Link {link_row.get('id')} already in target; keeping module {existing}"
                )
                return {**link_row, "module_id": existing}

        clone = self._clone(instance, post_id)
        if not await insert_clone(clone):
            logger.warning(
                f"Clone of module instance {instance_id} for post {post_id} was not "
                f"written; link keeps {instance_id}"
            )
            return link_row

        self._index[clone["id"]] = clone
        self._claims[clone["id"]] = post_id
        self._clones.setdefault(instance_id, []).append(clone["id"])
        logger.debug(
            f"Cloned module instance {instance_id} as {clone['id']} for post {post_id} "
            f"(already claimed by {claimed_by})"
        )

        return {**link_row, "module_id": clone["id"]}
