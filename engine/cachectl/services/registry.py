"""Resource registry — persists provider configs, managed instances and the action log."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..apis.cache import CloudMemorystoreInstance
from ..apis.common import Managed
from ..errors import UnknownKindError
from ..models.action_log import ActionLog
from ..models.instance import ManagedInstance
from ..models.provider import ProviderConfig

logger = logging.getLogger(__name__)

KINDS: dict[str, type[Managed]] = {
    CloudMemorystoreInstance.kind: CloudMemorystoreInstance,
}


def _to_managed(row: ManagedInstance) -> Managed:
    cls = KINDS.get(row.kind)
    if cls is None:
        raise UnknownKindError(f"No kind registered for '{row.kind}'. Supported: {list(KINDS)}")
    mg = cls.model_validate(row.document)
    mg.metadata.deletion_requested = row.deletion_requested
    return mg


def _is_unset(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return value is None or value == "" or value == 0 or value == {}


def _fill_unset(stored: dict[str, Any], observed: dict[str, Any]) -> dict[str, Any]:
    """Take observed values only for fields the stored document leaves unset."""
    merged = dict(stored)
    for key, value in observed.items():
        if _is_unset(merged.get(key)) and not _is_unset(value):
            merged[key] = value
    return merged


class ResourceRegistry:
    """Database access for everything the reconcile driver reads and writes."""

    # -- Providers -----------------------------------------------------------

    @staticmethod
    def list_providers(db: Session, active_only: bool = True) -> list[ProviderConfig]:
        """List all provider configs from the database."""
        q = db.query(ProviderConfig)
        if active_only:
            q = q.filter(ProviderConfig.is_active.is_(True))
        return q.order_by(ProviderConfig.id).all()

    @staticmethod
    def get_provider(db: Session, provider_id: str) -> ProviderConfig | None:
        return db.get(ProviderConfig, provider_id)

    @staticmethod
    def create_provider(db: Session, **kwargs: Any) -> ProviderConfig:
        provider = ProviderConfig(**kwargs)
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def update_provider(db: Session, provider_id: str, **kwargs: Any) -> ProviderConfig | None:
        provider = db.get(ProviderConfig, provider_id)
        if provider is None:
            return None
        for k, v in kwargs.items():
            if hasattr(provider, k):
                setattr(provider, k, v)
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def delete_provider(db: Session, provider_id: str) -> bool:
        provider = db.get(ProviderConfig, provider_id)
        if provider is None:
            return False
        db.delete(provider)
        db.commit()
        return True

    # -- Managed instances ---------------------------------------------------

    @staticmethod
    def apply_instance(db: Session, mg: Managed) -> Managed:
        """Create or replace the desired state of an instance.

        Status and an already-assigned external name are kept: the external
        name identifies the remote resource and never changes once set.
        """
        row = db.get(ManagedInstance, mg.metadata.name)
        if row is None:
            row = ManagedInstance(
                name=mg.metadata.name,
                kind=mg.kind,
                provider_config_id=getattr(mg.spec, "provider_config_ref", ""),
                document=mg.model_dump(mode="json"),
                deletion_requested=mg.metadata.deletion_requested,
            )
            db.add(row)
        else:
            if row.kind != mg.kind:
                raise ValueError(f"'{mg.metadata.name}' is a {row.kind}, not a {mg.kind}")
            current = _to_managed(row)
            current.spec = mg.spec
            if not current.metadata.external_name:
                current.metadata.external_name = mg.metadata.external_name
            row.provider_config_id = getattr(mg.spec, "provider_config_ref", "")
            row.document = current.model_dump(mode="json")
        db.commit()
        db.refresh(row)
        return _to_managed(row)

    @staticmethod
    def get_instance(db: Session, name: str) -> Optional[Managed]:
        row = db.get(ManagedInstance, name)
        return _to_managed(row) if row is not None else None

    @staticmethod
    def list_instances(db: Session) -> list[Managed]:
        """List every instance; rows of an unregistered kind are skipped."""
        rows = db.query(ManagedInstance).order_by(ManagedInstance.name).all()
        items: list[Managed] = []
        for r in rows:
            try:
                items.append(_to_managed(r))
            except UnknownKindError as e:
                logger.warning("Skipping instance %s: %s", r.name, e)
        return items

    @staticmethod
    def save_instance(db: Session, mg: Managed) -> bool:
        """Persist what a reconcile pass learned about an instance.

        The stored document is the base. Status is replaced, the external
        name is set only if none was stored yet, and late-initialized
        parameters fill only the fields the stored spec leaves unset, so a
        spec applied while the pass ran is never reverted. Deletion
        requests live on the row and are not touched.
        """
        row = db.get(ManagedInstance, mg.metadata.name)
        if row is None:
            return False
        observed = mg.model_dump(mode="json")
        document = dict(row.document)
        document["status"] = observed["status"]

        metadata = dict(document.get("metadata", {}))
        if not metadata.get("external_name"):
            metadata["external_name"] = observed["metadata"]["external_name"]
        document["metadata"] = metadata

        spec = dict(document.get("spec", {}))
        for_provider = observed["spec"].get("for_provider")
        if for_provider is not None:
            spec["for_provider"] = _fill_unset(spec.get("for_provider", {}), for_provider)
        document["spec"] = spec

        row.document = document
        db.commit()
        return True

    @staticmethod
    def request_deletion(db: Session, name: str) -> bool:
        row = db.get(ManagedInstance, name)
        if row is None:
            return False
        row.deletion_requested = True
        db.commit()
        return True

    @staticmethod
    def remove_instance(db: Session, name: str) -> bool:
        row = db.get(ManagedInstance, name)
        if row is None:
            return False
        db.delete(row)
        db.commit()
        return True

    # -- Action log ----------------------------------------------------------

    @staticmethod
    def log_action(
        db: Session,
        instance_name: str,
        action_type: str,
        status: str,
        details: dict[str, Any] | None = None,
        initiated_by: str = "scheduler",
    ) -> ActionLog:
        entry = ActionLog(
            instance_name=instance_name,
            action_type=action_type,
            status=status,
            details=details or {},
            initiated_by=initiated_by,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def list_actions(db: Session, instance_name: str | None = None, limit: int = 50) -> list[ActionLog]:
        q = db.query(ActionLog)
        if instance_name:
            q = q.filter(ActionLog.instance_name == instance_name)
        return q.order_by(ActionLog.created_at.desc()).limit(limit).all()


# -- Singleton ---------------------------------------------------------------

registry = ResourceRegistry()
