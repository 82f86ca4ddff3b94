"""Tests for the Cloud Memorystore external client (mocked Cloud Redis API)."""

from __future__ import annotations

from typing import ClassVar
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc
from google.cloud import redis_v1

from cachectl.apis.common import (
    ConditionReason,
    ConditionType,
    Managed,
    ObjectMeta,
    available,
    creating,
    deleting,
)
from cachectl.context import CallContext
from cachectl.errors import (
    CreateError,
    DeleteError,
    ObserveError,
    OperationCancelled,
    TypeMismatchError,
    UpdateError,
)
from cachectl.providers.base import CallOptions
from cachectl.providers.gcp.adapter import ERR_NOT_INSTANCE, CloudMemorystoreClient

from conftest import HOST, PORT, PROJECT, QUALIFIED_NAME, REGION


class OtherKind(Managed):
    kind: ClassVar[str] = "OtherKind"


def _client(redis: MagicMock, call_options: CallOptions | None = None) -> CloudMemorystoreClient:
    return CloudMemorystoreClient(redis, PROJECT, call_options=call_options)


def _ready_reason(cr) -> ConditionReason | None:
    cond = cr.status.get_condition(ConditionType.READY)
    return cond.reason if cond else None


def _status_dump(status) -> dict:
    dump = status.model_dump()
    for cond in dump["conditions"]:
        cond.pop("last_transition_time")
    return dump


# ---------------------------------------------------------------------------
# observe
# ---------------------------------------------------------------------------


class TestObserve:

    def test_ready_instance(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("READY")
        cr = make_instance()

        obs = _client(redis).observe(CallContext.background(), cr)

        assert obs.resource_exists is True
        assert obs.resource_up_to_date is True
        assert obs.resource_late_initialized is True
        assert obs.connection_details == {"endpoint": b"172.16.0.1", "port": b"6379"}
        assert _ready_reason(cr) == ConditionReason.AVAILABLE
        assert cr.status.at_provider.state == "READY"
        assert cr.status.at_provider.host == HOST
        assert cr.status.at_provider.port == PORT
        assert cr.status.at_provider.name == QUALIFIED_NAME
        assert cr.spec.for_provider.tier == "TIER_UNSPECIFIED"

        request = redis.get_instance.call_args.kwargs["request"]
        assert request.name == QUALIFIED_NAME

    def test_creating_instance(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("CREATING", host="", port=0)
        cr = make_instance()

        obs = _client(redis).observe(CallContext.background(), cr)

        assert obs.resource_exists is True
        assert obs.connection_details == {}
        assert _ready_reason(cr) == ConditionReason.CREATING

    def test_deleting_instance(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("DELETING")
        cr = make_instance()

        _client(redis).observe(CallContext.background(), cr)

        assert _ready_reason(cr) == ConditionReason.DELETING

    def test_other_state_leaves_conditions(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("MAINTENANCE")
        cr = make_instance()
        cr.status.set_conditions(available())

        _client(redis).observe(CallContext.background(), cr)

        assert cr.status.at_provider.state == "MAINTENANCE"
        assert _ready_reason(cr) == ConditionReason.AVAILABLE

    def test_not_found_is_not_an_error(self, make_instance):
        redis = MagicMock()
        redis.get_instance.side_effect = gexc.NotFound("instance not found")
        cr = make_instance()
        before = cr.model_dump()

        obs = _client(redis).observe(CallContext.background(), cr)

        assert obs.resource_exists is False
        assert obs.connection_details == {}
        assert cr.model_dump() == before

    def test_remote_error_is_wrapped(self, make_instance):
        redis = MagicMock()
        boom = gexc.InternalServerError("boom")
        redis.get_instance.side_effect = boom
        cr = make_instance()

        with pytest.raises(ObserveError) as exc_info:
            _client(redis).observe(CallContext.background(), cr)

        assert str(exc_info.value).startswith("cannot get CloudMemorystore instance: ")
        assert exc_info.value.cause is boom
        assert exc_info.value.__cause__ is boom
        assert cr.status.conditions == []

    def test_wrong_kind(self):
        redis = MagicMock()
        mg = OtherKind(metadata=ObjectMeta(name="x"))
        before = mg.model_dump()
        with pytest.raises(TypeMismatchError, match=ERR_NOT_INSTANCE):
            _client(redis).observe(CallContext.background(), mg)
        redis.get_instance.assert_not_called()
        assert mg.model_dump() == before

    def test_repeated_observe_is_stable(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("READY")
        cr = make_instance()
        client = _client(redis)

        client.observe(CallContext.background(), cr)
        first = cr.model_dump()
        obs = client.observe(CallContext.background(), cr)

        assert cr.model_dump() == first
        assert obs.resource_late_initialized is False

    def test_out_of_date(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("READY", memory_size_gb=2)
        cr = make_instance()

        obs = _client(redis).observe(CallContext.background(), cr)

        assert obs.resource_up_to_date is False
        assert cr.spec.for_provider.memory_size_gb == 1

    def test_region_falls_back_to_client_default(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("READY")
        cr = make_instance(region="")
        client = CloudMemorystoreClient(redis, PROJECT, default_region=REGION)

        client.observe(CallContext.background(), cr)

        assert redis.get_instance.call_args.kwargs["request"].name == QUALIFIED_NAME

    def test_cancelled_context(self, make_instance):
        redis = MagicMock()
        ctx = CallContext.background()
        ctx.cancel()

        with pytest.raises(OperationCancelled):
            _client(redis).observe(ctx, make_instance())
        redis.get_instance.assert_not_called()

    def test_deadline_exceeded_with_live_context_is_remote_error(self, make_instance):
        redis = MagicMock()
        slow = gexc.DeadlineExceeded("too slow")
        redis.get_instance.side_effect = slow

        with pytest.raises(ObserveError) as exc_info:
            _client(redis).observe(CallContext.background(), make_instance())

        assert exc_info.value.cause is slow

    def test_deadline_exceeded_after_context_cancelled(self, make_instance):
        redis = MagicMock()
        ctx = CallContext.background()

        def cancel_then_time_out(**kwargs):
            ctx.cancel()
            raise gexc.DeadlineExceeded("too slow")

        redis.get_instance.side_effect = cancel_then_time_out

        with pytest.raises(OperationCancelled, match="cannot get CloudMemorystore instance"):
            _client(redis).observe(ctx, make_instance())

    def test_cancelled_reply(self, make_instance):
        redis = MagicMock()
        redis.get_instance.side_effect = gexc.Cancelled("call cancelled")

        with pytest.raises(OperationCancelled):
            _client(redis).observe(CallContext.background(), make_instance())

    def test_call_options_passed_through(self, make_instance, make_redis):
        redis = MagicMock()
        redis.get_instance.return_value = make_redis("READY")
        retry = object()
        options = CallOptions(retry=retry, timeout=30.0, metadata=(("x-test", "1"),))

        _client(redis, options).observe(CallContext(timeout=5.0), make_instance())

        kwargs = redis.get_instance.call_args.kwargs
        assert kwargs["retry"] is retry
        assert kwargs["metadata"] == (("x-test", "1"),)
        assert 0 < kwargs["timeout"] <= 5.0


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


class TestCreate:

    def test_create(self, make_instance):
        redis = MagicMock()
        cr = make_instance(labels={"team": "cache"})

        creation = _client(redis).create(CallContext.background(), cr)

        assert creation.connection_details == {}
        assert _ready_reason(cr) == ConditionReason.CREATING
        request = redis.create_instance.call_args.kwargs["request"]
        assert request.parent == f"projects/{PROJECT}/locations/{REGION}"
        assert request.instance_id == "claimns-claimname-8sdh3"
        assert request.instance.memory_size_gb == 1
        assert request.instance.connect_mode == redis_v1.Instance.ConnectMode.DIRECT_PEERING
        assert dict(request.instance.labels) == {"team": "cache"}
        assert dict(request.instance.redis_configs) == {"cool": "socool"}

    def test_create_failure_keeps_creating(self, make_instance):
        redis = MagicMock()
        boom = gexc.PermissionDenied("no")
        redis.create_instance.side_effect = boom
        cr = make_instance()
        expected = cr.status.model_copy(deep=True)
        expected.set_conditions(creating())

        with pytest.raises(CreateError) as exc_info:
            _client(redis).create(CallContext.background(), cr)

        assert str(exc_info.value).startswith("cannot create CloudMemorystore instance: ")
        assert exc_info.value.cause is boom
        assert _status_dump(cr.status) == _status_dump(expected)

    def test_create_cancelled_before_mutation(self, make_instance):
        redis = MagicMock()
        cr = make_instance()
        ctx = CallContext.background()
        ctx.cancel()

        with pytest.raises(OperationCancelled):
            _client(redis).create(ctx, cr)

        assert cr.status.conditions == []
        redis.create_instance.assert_not_called()

    def test_create_unknown_tier_sends_nothing(self, make_instance):
        redis = MagicMock()
        cr = make_instance()
        cr.spec.for_provider = cr.spec.for_provider.model_copy(update={"tier": "PLATINUM"})

        with pytest.raises(ValueError, match="PLATINUM"):
            _client(redis).create(CallContext.background(), cr)

        assert cr.status.conditions == []
        redis.create_instance.assert_not_called()

    def test_create_wrong_kind(self):
        redis = MagicMock()
        mg = OtherKind(metadata=ObjectMeta(name="x"))
        before = mg.model_dump()
        with pytest.raises(TypeMismatchError, match=ERR_NOT_INSTANCE):
            _client(redis).create(CallContext.background(), mg)
        redis.create_instance.assert_not_called()
        assert mg.model_dump() == before


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


class TestUpdate:

    def test_update_sends_mutable_fields(self, make_instance):
        redis = MagicMock()
        cr = make_instance(memory_size_gb=4, display_name="cool cache")
        cr.status.set_conditions(available())

        _client(redis).update(CallContext.background(), cr)

        request = redis.update_instance.call_args.kwargs["request"]
        assert list(request.update_mask.paths) == ["memory_size_gb", "display_name", "labels", "redis_configs"]
        assert request.instance.name == QUALIFIED_NAME
        assert request.instance.memory_size_gb == 4
        assert request.instance.display_name == "cool cache"
        assert _ready_reason(cr) == ConditionReason.AVAILABLE

    def test_update_failure(self, make_instance):
        redis = MagicMock()
        boom = gexc.BadRequest("bad")
        redis.update_instance.side_effect = boom
        cr = make_instance()
        cr.status.set_conditions(available())
        before = cr.model_dump()

        with pytest.raises(UpdateError) as exc_info:
            _client(redis).update(CallContext.background(), cr)

        assert str(exc_info.value) == f"cannot update CloudMemorystore instance: {boom}"
        assert cr.model_dump() == before

    def test_update_wrong_kind(self):
        redis = MagicMock()
        mg = OtherKind(metadata=ObjectMeta(name="x"))
        before = mg.model_dump()
        with pytest.raises(TypeMismatchError, match=ERR_NOT_INSTANCE):
            _client(redis).update(CallContext.background(), mg)
        redis.update_instance.assert_not_called()
        assert mg.model_dump() == before


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


class TestDelete:

    def test_delete(self, make_instance):
        redis = MagicMock()
        cr = make_instance()

        _client(redis).delete(CallContext.background(), cr)

        assert _ready_reason(cr) == ConditionReason.DELETING
        assert redis.delete_instance.call_args.kwargs["request"].name == QUALIFIED_NAME

    def test_delete_not_found_is_success(self, make_instance):
        redis = MagicMock()
        redis.delete_instance.side_effect = gexc.NotFound("gone")
        cr = make_instance()

        _client(redis).delete(CallContext.background(), cr)

        assert _ready_reason(cr) == ConditionReason.DELETING

    def test_delete_failure_keeps_deleting(self, make_instance):
        redis = MagicMock()
        boom = gexc.InternalServerError("boom")
        redis.delete_instance.side_effect = boom
        cr = make_instance()
        cr.status.set_conditions(available())
        expected = cr.status.model_copy(deep=True)
        expected.set_conditions(deleting())

        with pytest.raises(DeleteError) as exc_info:
            _client(redis).delete(CallContext.background(), cr)

        assert exc_info.value.__cause__ is boom
        assert _status_dump(cr.status) == _status_dump(expected)

    def test_delete_wrong_kind(self):
        redis = MagicMock()
        mg = OtherKind(metadata=ObjectMeta(name="x"))
        before = mg.model_dump()
        with pytest.raises(TypeMismatchError, match=ERR_NOT_INSTANCE):
            _client(redis).delete(CallContext.background(), mg)
        redis.delete_instance.assert_not_called()
        assert mg.model_dump() == before

    def test_delete_twice_keeps_transition_time(self, make_instance):
        redis = MagicMock()
        cr = make_instance()
        client = _client(redis)

        client.delete(CallContext.background(), cr)
        first = cr.status.get_condition(ConditionType.READY)
        client.delete(CallContext.background(), cr)

        assert cr.status.get_condition(ConditionType.READY) is first
        assert first.equal(deleting())
        assert not first.equal(creating())

    def test_delete_cancelled_before_mutation(self, make_instance):
        redis = MagicMock()
        cr = make_instance()
        ctx = CallContext(timeout=0)

        with pytest.raises(OperationCancelled):
            _client(redis).delete(ctx, cr)

        assert cr.status.conditions == []
        redis.delete_instance.assert_not_called()
