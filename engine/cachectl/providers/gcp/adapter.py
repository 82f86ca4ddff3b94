"""GCP Cloud Memorystore adapter — connector and external client for Redis instances.

Docs: https://cloud.google.com/memorystore/docs/redis/reference/rest
SDK:  google-cloud-redis, google-auth

Create, update and delete start long-running operations that are not
awaited here: the next observe is what confirms the outcome. Create and
delete set their condition before the call goes out and leave it in place
if the call fails.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from google.api_core import exceptions as gexc
from google.auth.exceptions import GoogleAuthError
from sqlalchemy.orm import Session

from ...apis.cache import CloudMemorystoreInstance
from ...apis.common import Managed, available, creating, deleting
from ...context import CallContext
from ...errors import (
    ConnectError,
    CreateError,
    DeleteError,
    ExternalCallError,
    ObserveError,
    OperationCancelled,
    TypeMismatchError,
    UpdateError,
)
from ...models.provider import ProviderConfig
from ..base import (
    CallOptions,
    ExternalClient,
    ExternalConnector,
    ExternalCreation,
    ExternalObservation,
    ExternalUpdate,
)
from . import cloudmemorystore as cms
from .auth import GCPClients, RedisClientFactory

logger = logging.getLogger(__name__)

ERR_NOT_INSTANCE = "managed resource is not a CloudMemorystore instance"


def _as_instance(mg: Managed) -> CloudMemorystoreInstance:
    if not isinstance(mg, CloudMemorystoreInstance):
        raise TypeMismatchError(ERR_NOT_INSTANCE)
    return mg


class CloudMemorystoreClient(ExternalClient):
    """Observe/create/update/delete of one Redis instance in one GCP project."""

    def __init__(
        self,
        redis: Any,
        project_id: str,
        default_region: str = "",
        call_options: Optional[CallOptions] = None,
    ):
        self._redis = redis
        self.project_id = project_id
        self.default_region = default_region
        self.call_options = call_options or CallOptions()

    def _instance_id(self, cr: CloudMemorystoreInstance) -> cms.InstanceID:
        return cms.new_instance_id(self.project_id, cr, self.default_region)

    # ── Operations ────────────────────────────────────────────────────────

    def observe(self, ctx: CallContext, mg: Managed) -> ExternalObservation:
        cr = _as_instance(mg)
        instance_id = self._instance_id(cr)
        try:
            existing = self._call(
                ctx, ObserveError, self._redis.get_instance,
                cms.new_get_instance_request(instance_id), tolerate_not_found=True,
            )
        except gexc.NotFound:
            logger.debug("CloudMemorystore instance %s not found", instance_id.name)
            return ExternalObservation(resource_exists=False)

        late_initialized = cms.late_initialize_spec(cr.spec.for_provider, existing)
        cr.status.at_provider = cms.generate_observation(existing)

        state = cr.status.at_provider.state
        if state == cms.State.READY:
            cr.status.set_conditions(available())
        elif state == cms.State.CREATING:
            cr.status.set_conditions(creating())
        elif state == cms.State.DELETING:
            cr.status.set_conditions(deleting())

        logger.debug("CloudMemorystore instance %s is %s", instance_id.name, state)
        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=cms.is_up_to_date(cr.spec.for_provider, existing),
            resource_late_initialized=late_initialized,
            connection_details=cms.connection_details(cr.status.at_provider),
        )

    def create(self, ctx: CallContext, mg: Managed) -> ExternalCreation:
        cr = _as_instance(mg)
        ctx.check()
        instance_id = self._instance_id(cr)
        request = cms.new_create_instance_request(instance_id, cr)
        cr.status.set_conditions(creating())
        logger.info("Creating CloudMemorystore instance %s", instance_id.name)
        self._call(ctx, CreateError, self._redis.create_instance, request)
        return ExternalCreation()

    def update(self, ctx: CallContext, mg: Managed) -> ExternalUpdate:
        cr = _as_instance(mg)
        instance_id = self._instance_id(cr)
        logger.info("Updating CloudMemorystore instance %s", instance_id.name)
        self._call(ctx, UpdateError, self._redis.update_instance, cms.new_update_instance_request(instance_id, cr))
        return ExternalUpdate()

    def delete(self, ctx: CallContext, mg: Managed) -> None:
        cr = _as_instance(mg)
        ctx.check()
        cr.status.set_conditions(deleting())
        instance_id = self._instance_id(cr)
        logger.info("Deleting CloudMemorystore instance %s", instance_id.name)
        try:
            self._call(
                ctx, DeleteError, self._redis.delete_instance,
                cms.new_delete_instance_request(instance_id), tolerate_not_found=True,
            )
        except gexc.NotFound:
            logger.debug("CloudMemorystore instance %s already gone", instance_id.name)

    # ── Internal helpers ──────────────────────────────────────────────────

    def _call(
        self,
        ctx: CallContext,
        error_cls: type[ExternalCallError],
        method: Callable[..., Any],
        request: Any,
        tolerate_not_found: bool = False,
    ) -> Any:
        """Issue one remote call and map its failure onto the error taxonomy.

        NotFound is re-raised untouched when ``tolerate_not_found`` is set.
        A reply that arrives after the context was cancelled or expired,
        DEADLINE_EXCEEDED included, is OperationCancelled; a per-call
        timeout hit while the context is live is a remote failure.
        """
        ctx.check()
        try:
            return method(request=request, **self.call_options.for_call(ctx))
        except gexc.NotFound as e:
            if tolerate_not_found:
                raise
            raise error_cls(e) from e
        except gexc.Cancelled as e:
            raise OperationCancelled(f"{error_cls.prefix}: {e}") from e
        except Exception as e:
            if ctx.cancelled:
                raise OperationCancelled(f"{error_cls.prefix}: {e}") from e
            raise error_cls(e) from e


class CloudMemorystoreConnector(ExternalConnector):
    """Resolves a ProviderConfig and builds a client for it.

    Reads the database and the credentials file; makes no remote calls.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        client_factory: Optional[RedisClientFactory] = None,
        call_options: Optional[CallOptions] = None,
    ):
        self._session_factory = session_factory
        self._client_factory = client_factory
        self.call_options = call_options or CallOptions()

    def connect(self, ctx: CallContext, mg: Managed) -> CloudMemorystoreClient:
        cr = _as_instance(mg)
        ctx.check()
        ref = cr.spec.provider_config_ref
        credentials_path, project_id, region = self._provider_config(ref)

        clients = GCPClients(credentials_path, project_id=project_id, client_factory=self._client_factory)
        try:
            _ = clients.credentials
        except (OSError, ValueError, GoogleAuthError) as e:
            raise ConnectError(f"cannot load credentials for ProviderConfig '{ref}': {e}") from e

        if not clients.project_id:
            raise ConnectError(f"ProviderConfig '{ref}' has no project id")

        try:
            redis = clients.redis
        except Exception as e:
            raise ConnectError(f"cannot create new CloudMemorystore client: {e}") from e

        return CloudMemorystoreClient(
            redis, clients.project_id, default_region=region, call_options=self.call_options,
        )

    def _provider_config(self, ref: str) -> tuple[str, str, str]:
        session_factory = self._session_factory
        if session_factory is None:
            from ...db import SessionLocal
            session_factory = SessionLocal

        with session_factory() as db:
            config = db.get(ProviderConfig, ref)
            if config is None:
                raise ConnectError(f"cannot get ProviderConfig '{ref}'")
            if not config.is_active:
                raise ConnectError(f"ProviderConfig '{ref}' is not active")
            if config.provider_type != "gcp":
                raise ConnectError(
                    f"ProviderConfig '{ref}' is of type '{config.provider_type}', expected 'gcp'"
                )
            return config.credentials_path, config.project_id, config.region
