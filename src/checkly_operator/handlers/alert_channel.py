"""Handler for AlertChannel CRD.

``AlertChannelReconciler`` converges one AlertChannel with its Checkly
counterpart per invocation. The kopf functions at the bottom of the module
are the triggers: create, update, resume and delete handlers plus a periodic
resync.
"""

from __future__ import annotations

import enum
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Protocol

import kopf
from kubernetes import client

from .. import metrics
from ..builders.alert_channel import build_channel_payload
from ..config import OperatorConfig
from ..constants import API_GROUP_VERSION, DEFAULT_CONTROLLER_DOMAIN, KIND_ALERT_CHANNEL, finalizer_for
from ..models import AlertChannel, LifecycleState, ObjectRef
from ..services.checkly import AlertChannelAPI, ChecklyClient
from ..services.k8s import AlertChannelStore, KubernetesAlertChannelStore, load_kube_config
from ..tracing import trace_span
from ..utils.context import with_correlation_id
from ..utils.errors import (
    ChannelError,
    ChannelSpecError,
    ConflictError,
    NotFoundError,
    ReconcileCancelled,
    RemoteServiceError,
    sanitize_exception,
)
from ..utils.events import (
    emit_channel_created,
    emit_channel_deleted,
    emit_channel_updated,
    emit_finalizer_added,
    emit_finalizer_removed,
    emit_reconcile_failed,
)
from ..utils.secrets import SecretResolver, SecretSource
from .base import BaseHandler


class Result(enum.Enum):
    """What the caller should do after an invocation."""

    DONE = "done"
    REQUEUE = "requeue"


class Action(enum.Enum):
    """The decision taken by an invocation."""

    NONE = "none"
    GONE = "gone"
    FETCH_FAILED = "fetch_failed"
    CANCELLED = "cancelled"
    FINALIZER_ADDED = "finalizer_added"
    FINALIZER_REMOVED = "finalizer_removed"
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass
class ReconcileOutcome:
    """Result of one reconcile invocation."""

    action: Action
    result: Result = Result.DONE
    remote_id: int = 0
    error: Exception | None = None

    @property
    def requeue(self) -> bool:
        return self.result is Result.REQUEUE


class StopSignal(Protocol):
    def is_set(self) -> bool:
        ...


@dataclass
class ReconcilerDependencies:
    """Collaborators the reconciler talks to."""

    store: AlertChannelStore
    secrets: SecretSource
    remote: AlertChannelAPI


class AlertChannelReconciler(BaseHandler):
    """Drives a single AlertChannel toward its Checkly counterpart.

    Every invocation re-reads the object and issues at most one Checkly
    mutation. The finalizer is persisted on a pass of its own before any
    remote side effect, so a remote channel can never exist without the
    token that guarantees its cleanup.
    """

    def __init__(self, deps: ReconcilerDependencies, controller_domain: str = DEFAULT_CONTROLLER_DOMAIN):
        super().__init__(KIND_ALERT_CHANNEL, finalizer_for(controller_domain))
        self.deps = deps

    def reconcile(self, ref: ObjectRef, stop: StopSignal | None = None) -> ReconcileOutcome:
        """Run one invocation for the object identified by ``ref``.

        Returns:
            The outcome; ``Result.REQUEUE`` asks for an immediate re-invocation

        Raises:
            ChannelError: On any failure that should be retried by the caller
        """
        ref_meta = {"name": ref.name, "namespace": ref.namespace}
        with trace_span("reconcile_alert_channel", kind=self.kind, attributes={"k8s.object": str(ref)}):
            self._check_cancelled(stop, ref_meta)
            try:
                channel = self.deps.store.get(ref)
            except NotFoundError:
                self.log_info(ref_meta, "AlertChannel no longer exists, nothing to reconcile", reason="Gone")
                return ReconcileOutcome(Action.GONE)
            except ChannelError as e:
                self.log_error(ref_meta, "Failed to read AlertChannel", error=e, reason="FetchFailed")
                return ReconcileOutcome(Action.FETCH_FAILED, error=e)

            state = channel.lifecycle_state(self.finalizer)
            if state is LifecycleState.TEARING_DOWN:
                return self._tear_down(channel, stop)
            if state is LifecycleState.RELEASED:
                self.log_info(
                    channel.meta,
                    "AlertChannel is being deleted and already released",
                    reason="Released",
                    remote_id=channel.remote_id,
                )
                return ReconcileOutcome(Action.NONE, remote_id=channel.remote_id)
            if state is LifecycleState.UNMANAGED:
                return self._attach_finalizer(channel, stop)
            return self._sync(channel, stop)

    def _tear_down(self, channel: AlertChannel, stop: StopSignal | None) -> ReconcileOutcome:
        remote_id = channel.remote_id
        self._check_cancelled(stop, channel.meta)

        if remote_id:
            self.log_info(
                channel.meta,
                "Finalizer is present, deleting Checkly alert channel",
                event="deletion",
                reason="Deleting",
                remote_id=remote_id,
            )
            try:
                self.deps.remote.delete_alert_channel(remote_id)
            except RemoteServiceError as e:
                metrics.channel_operations_total.labels(operation="delete", result="error").inc()
                self.log_error(
                    channel.meta,
                    "Failed to delete Checkly alert channel, keeping finalizer",
                    error=e,
                    reason="DeleteFailed",
                    remote_id=remote_id,
                )
                raise
            metrics.channel_operations_total.labels(operation="delete", result="success").inc()
            action = Action.DELETED
        else:
            self.log_info(
                channel.meta,
                "Alert channel was never created on Checkly, skipping remote delete",
                event="deletion",
                reason="NotCreated",
            )
            action = Action.FINALIZER_REMOVED

        self.release_finalizer(channel)
        try:
            self.deps.store.update(channel)
        except ChannelError as e:
            self.log_error(channel.meta, "Failed to remove finalizer", error=e, reason="FinalizerFailed", remote_id=remote_id)
            raise
        metrics.finalizer_operations_total.labels(operation="remove").inc()
        self.log_info(channel.meta, "Removed finalizer from AlertChannel", event="deletion", reason="Released", remote_id=remote_id)
        return ReconcileOutcome(action, remote_id=remote_id)

    def _attach_finalizer(self, channel: AlertChannel, stop: StopSignal | None) -> ReconcileOutcome:
        self._check_cancelled(stop, channel.meta)
        self.ensure_finalizer(channel)
        try:
            self.deps.store.update(channel)
        except ChannelError as e:
            self.log_error(channel.meta, "Failed to add finalizer", error=e, reason="FinalizerFailed")
            raise
        metrics.finalizer_operations_total.labels(operation="add").inc()
        self.log_info(channel.meta, "Added finalizer", reason="FinalizerAdded", finalizer=self.finalizer, remote_id=channel.remote_id)
        return ReconcileOutcome(Action.FINALIZER_ADDED, result=Result.REQUEUE, remote_id=channel.remote_id)

    def _sync(self, channel: AlertChannel, stop: StopSignal | None) -> ReconcileOutcome:
        try:
            payload = build_channel_payload(channel, self.deps.secrets).to_api()
        except ChannelError as e:
            self.log_error(channel.meta, "Could not assemble alert channel configuration", error=e, reason="ConfigInvalid")
            raise

        self._check_cancelled(stop, channel.meta)

        if channel.remote_id:
            remote_id = channel.remote_id
            self.log_info(channel.meta, "Existing alert channel, updating", reason="Updating", remote_id=remote_id)
            try:
                self.deps.remote.update_alert_channel(remote_id, payload)
            except RemoteServiceError as e:
                metrics.channel_operations_total.labels(operation="update", result="error").inc()
                self.log_error(channel.meta, "Failed to update Checkly alert channel", error=e, reason="UpdateFailed", remote_id=remote_id)
                raise
            metrics.channel_operations_total.labels(operation="update", result="success").inc()
            self.log_info(channel.meta, "Updated Checkly alert channel", reason="Updated", remote_id=remote_id)
            return ReconcileOutcome(Action.UPDATED, remote_id=remote_id)

        self.log_info(channel.meta, "No Checkly alert channel recorded, creating", reason="Creating", channel_type=payload["type"])
        try:
            remote_id = self.deps.remote.create_alert_channel(payload)
        except RemoteServiceError as e:
            metrics.channel_operations_total.labels(operation="create", result="error").inc()
            self.log_error(channel.meta, "Failed to create Checkly alert channel", error=e, reason="CreateFailed")
            raise
        metrics.channel_operations_total.labels(operation="create", result="success").inc()

        channel.remote_id = remote_id
        try:
            self.deps.store.update_status(channel)
        except ChannelError as e:
            # Creation is at-least-once: the next pass creates again
            self.log_error(
                channel.meta,
                "Created Checkly alert channel but failed to record its ID; a duplicate may be created on retry",
                error=e,
                reason="StatusUpdateFailed",
                remote_id=remote_id,
            )
            raise
        self.log_info(channel.meta, "New Checkly alert channel created", reason="Created", remote_id=remote_id)
        return ReconcileOutcome(Action.CREATED, remote_id=remote_id)

    def _check_cancelled(self, stop: StopSignal | None, meta: dict[str, Any]) -> None:
        if stop is not None and stop.is_set():
            self.log_warning(meta, "Reconcile cancelled", reason="Cancelled")
            raise ReconcileCancelled(f"reconcile of {meta.get('namespace')}/{meta.get('name')} cancelled")


# Trigger plumbing

RESYNC_INTERVAL_SECONDS = float(os.getenv("RESYNC_INTERVAL_SECONDS", "300"))
RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "30"))
CONFLICT_RETRY_DELAY_SECONDS = 1.0

_reconciler: AlertChannelReconciler | None = None
_max_immediate_requeues = 3
_shutdown = threading.Event()
_locks: dict[ObjectRef, threading.Lock] = {}
_locks_guard = threading.Lock()
_RELEASED_ACTIONS = frozenset({Action.GONE, Action.DELETED, Action.FINALIZER_REMOVED})


class _TimerStop:
    """Stop signal set by either operator shutdown or kopf stopping a timer."""

    def __init__(self, shutdown: threading.Event, stopped: Any):
        self.shutdown = shutdown
        self.stopped = stopped

    def is_set(self) -> bool:
        return self.shutdown.is_set() or bool(self.stopped)


def install_reconciler(reconciler: AlertChannelReconciler, max_immediate_requeues: int = 3) -> AlertChannelReconciler:
    """Make ``reconciler`` the instance used by the kopf handlers."""
    global _reconciler, _max_immediate_requeues
    _reconciler = reconciler
    _max_immediate_requeues = max_immediate_requeues
    _shutdown.clear()
    return reconciler


def build_reconciler(config: OperatorConfig) -> AlertChannelReconciler:
    """Wire the reconciler to the cluster and to Checkly."""
    load_kube_config()
    deps = ReconcilerDependencies(
        store=KubernetesAlertChannelStore(client.CustomObjectsApi(), config.k8s_request_timeout),
        secrets=SecretResolver(client.CoreV1Api(), config.k8s_request_timeout),
        remote=ChecklyClient(
            api_key=config.checkly_api_key,
            account_id=config.checkly_account_id,
            base_url=config.checkly_api_url,
            timeout=config.checkly_request_timeout,
        ),
    )
    return AlertChannelReconciler(deps, controller_domain=config.controller_domain)


def get_reconciler() -> AlertChannelReconciler:
    if _reconciler is not None:
        return _reconciler
    config = OperatorConfig.from_env()
    return install_reconciler(build_reconciler(config), config.max_immediate_requeues)


def request_shutdown() -> None:
    """Signal in-flight invocations to stop at their next step."""
    _shutdown.set()


def _lock_for(ref: ObjectRef) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(ref)
        if lock is None:
            lock = _locks[ref] = threading.Lock()
        return lock


def _forget_lock(ref: ObjectRef) -> None:
    with _locks_guard:
        _locks.pop(ref, None)


def _emit_outcome_event(body: dict[str, Any], reconciler: AlertChannelReconciler, outcome: ReconcileOutcome) -> None:
    if outcome.action is Action.FINALIZER_ADDED:
        emit_finalizer_added(body, reconciler.finalizer)
    elif outcome.action is Action.FINALIZER_REMOVED:
        emit_finalizer_removed(body, reconciler.finalizer)
    elif outcome.action is Action.CREATED:
        emit_channel_created(body, outcome.remote_id)
    elif outcome.action is Action.UPDATED:
        emit_channel_updated(body, outcome.remote_id)
    elif outcome.action is Action.DELETED:
        emit_channel_deleted(body, outcome.remote_id)


def run_reconcile(
    reconciler: AlertChannelReconciler,
    ref: ObjectRef,
    body: dict[str, Any],
    stop: StopSignal | None = None,
    max_immediate_requeues: int = 3,
) -> ReconcileOutcome:
    """Invoke the reconciler for one object, honouring requeue requests.

    Invocations for the same object are serialized. Failures are reported as
    a Kubernetes event and re-raised as kopf errors so kopf owns the backoff.
    """
    with _lock_for(ref), with_correlation_id():
        metrics.reconcile_total.labels(kind=KIND_ALERT_CHANNEL, result="started").inc()
        start_time = time.time()
        try:
            outcome = reconciler.reconcile(ref, stop)
            requeues = 0
            while outcome.requeue and requeues < max_immediate_requeues:
                _emit_outcome_event(body, reconciler, outcome)
                requeues += 1
                outcome = reconciler.reconcile(ref, stop)
        except ReconcileCancelled:
            metrics.reconcile_total.labels(kind=KIND_ALERT_CHANNEL, result="cancelled").inc()
            return ReconcileOutcome(Action.CANCELLED)
        except ChannelError as e:
            sanitized_error = sanitize_exception(e)
            metrics.error_total.labels(kind=KIND_ALERT_CHANNEL, error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(kind=KIND_ALERT_CHANNEL, result="error").inc()
            emit_reconcile_failed(body, f"Reconciliation failed: {sanitized_error}")
            if isinstance(e, ChannelSpecError):
                raise kopf.PermanentError(sanitized_error) from e
            delay = CONFLICT_RETRY_DELAY_SECONDS if isinstance(e, ConflictError) else RETRY_DELAY_SECONDS
            raise kopf.TemporaryError(sanitized_error, delay=delay) from e
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=KIND_ALERT_CHANNEL).observe(duration)

        _emit_outcome_event(body, reconciler, outcome)
        result = "error" if outcome.action is Action.FETCH_FAILED else "success"
        metrics.reconcile_total.labels(kind=KIND_ALERT_CHANNEL, result=result).inc()
        if outcome.action in _RELEASED_ACTIONS:
            _forget_lock(ref)
        return outcome


@kopf.on.create(API_GROUP_VERSION, KIND_ALERT_CHANNEL)
@kopf.on.update(API_GROUP_VERSION, KIND_ALERT_CHANNEL)
@kopf.on.resume(API_GROUP_VERSION, KIND_ALERT_CHANNEL)
def handle_alert_channel(
    body: dict[str, Any],
    name: str,
    namespace: str,
    **kwargs: Any,
) -> None:
    """Reconcile an AlertChannel when it is created, changed or found at startup."""
    run_reconcile(
        get_reconciler(),
        ObjectRef(namespace=namespace, name=name),
        body,
        stop=_shutdown,
        max_immediate_requeues=_max_immediate_requeues,
    )


@kopf.on.delete(API_GROUP_VERSION, KIND_ALERT_CHANNEL)
def handle_alert_channel_delete(
    body: dict[str, Any],
    name: str,
    namespace: str,
    **kwargs: Any,
) -> None:
    """Tear down the Checkly alert channel; kopf retries until the finalizer is released."""
    outcome = run_reconcile(
        get_reconciler(),
        ObjectRef(namespace=namespace, name=name),
        body,
        stop=_shutdown,
        max_immediate_requeues=_max_immediate_requeues,
    )
    if outcome.requeue or outcome.action in (Action.CANCELLED, Action.FETCH_FAILED):
        raise kopf.TemporaryError(f"Teardown of {namespace}/{name} not finished", delay=RETRY_DELAY_SECONDS)


@kopf.timer(API_GROUP_VERSION, KIND_ALERT_CHANNEL, interval=RESYNC_INTERVAL_SECONDS, initial_delay=RESYNC_INTERVAL_SECONDS)
def resync_alert_channel(
    body: dict[str, Any],
    name: str,
    namespace: str,
    stopped: Any,
    **kwargs: Any,
) -> None:
    """Periodically reconcile every AlertChannel to repair drift and retry failures."""
    run_reconcile(
        get_reconciler(),
        ObjectRef(namespace=namespace, name=name),
        body,
        stop=_TimerStop(_shutdown, stopped),
        max_immediate_requeues=_max_immediate_requeues,
    )
