"""
Secret rotation engine.

SecretRotator runs reconciliation passes: for every declared secret it
reads the version history from the store, asks the lifecycle policy what
is due, and applies those actions through the store and the secret's
provisioner. The store is the only source of truth, so a pass can be
repeated or interrupted at any point and the next pass picks up from
whatever the store reports.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Sequence

from rotator.config.agent import ConfigAgent
from rotator.engine.clock import DisableClock
from rotator.engine.policy import evaluate_lifecycle
from rotator.errors import ProvisionerNotFoundError, StoreError
from rotator.models import (
    ActionType,
    FailureKind,
    PassResult,
    RotationAction,
    SecretOutcome,
    SecretSpec,
    SecretVersion,
)
from rotator.observability.logging import get_logger
from rotator.provisioners.base import SecretProvisioner
from rotator.provisioners.registry import ProvisionerRegistry
from rotator.store.base import SecretStore

logger = get_logger("engine")

DEFAULT_PERIOD = timedelta(seconds=60)
DEFAULT_MAX_WORKERS = 4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecretRotator:
    """
    Periodic reconciliation loop over declared secrets.

    Secrets are processed independently: a failure in one secret is
    recorded in its outcome and never stops the others. At most one pass
    runs at a time; a tick that arrives while a pass is still running is
    skipped.
    """

    def __init__(
        self,
        store: SecretStore,
        agent: ConfigAgent,
        provisioners: ProvisionerRegistry | Mapping[str, SecretProvisioner],
        period: timedelta = DEFAULT_PERIOD,
        enable_deletion: bool = False,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the rotator.

        Args:
            store: Secret store client
            agent: Config agent holding the live declaration
            provisioners: Registry, or mapping of type -> provisioner
            period: Time between passes in start()
            enable_deletion: Allow destroying disabled versions
            max_workers: Secrets processed concurrently within a pass
            clock: Source of the current time (defaults to UTC now)
        """
        if period <= timedelta(0):
            raise ValueError("period must be positive")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        if not isinstance(provisioners, ProvisionerRegistry):
            provisioners = ProvisionerRegistry.from_mapping(provisioners)

        self.store = store
        self.agent = agent
        self.provisioners = provisioners
        self.period = period
        self.enable_deletion = enable_deletion
        self.max_workers = max_workers
        self._clock = clock or _utcnow
        self._disable_clock = DisableClock()
        self._pass_lock = threading.Lock()
        self._callbacks: list[Callable[[PassResult], None]] = []
        self._pass_count = 0
        self._skipped_ticks = 0
        self._last_result: PassResult | None = None

    def add_callback(self, callback: Callable[[PassResult], None]) -> None:
        """
        Add a callback to be called after each completed pass.

        Args:
            callback: Function taking the PassResult
        """
        self._callbacks.append(callback)

    def run_once(self) -> PassResult:
        """
        Run exactly one reconciliation pass and return its result.

        Waits for a pass already in progress (started by start()) to finish
        before running.
        """
        with self._pass_lock:
            return self._run_pass()

    def plan(self) -> PassResult:
        """
        Compute the actions a pass would take without applying them.

        Outcomes carry the planned actions; nothing is written to the store
        and no provisioner is called.
        """
        with self._pass_lock:
            return self._run_pass(apply=False)

    def start(self, stop: threading.Event) -> None:
        """
        Run passes every period until stop is set.

        Ticks are aligned to the time start() was called. The stop event is
        checked between passes only; a pass in progress always completes.
        Ticks missed because a pass overran the period are skipped.

        Args:
            stop: Cooperative stop signal
        """
        interval = self.period.total_seconds()
        next_tick = time.monotonic()
        logger.info(
            f"Starting secret rotator with period {self.period}",
            event_type="rotator.started",
            period_seconds=interval,
            enable_deletion=self.enable_deletion,
        )

        while not stop.is_set():
            self._tick()

            next_tick += interval
            now = time.monotonic()
            if now >= next_tick:
                missed = int((now - next_tick) // interval) + 1
                self._skipped_ticks += missed
                logger.warning(
                    f"Pass overran the period, skipping {missed} tick(s)",
                    event_type="rotator.ticks_skipped",
                    missed=missed,
                )
                next_tick += missed * interval

            stop.wait(max(0.0, next_tick - time.monotonic()))

        logger.info("Secret rotator stopped", event_type="rotator.stopped")

    def _tick(self) -> PassResult | None:
        if not self._pass_lock.acquire(blocking=False):
            self._skipped_ticks += 1
            logger.warning("Previous pass still running, skipping tick")
            return None
        try:
            return self._run_pass()
        except Exception as e:
            # Keep the loop alive; the next tick starts from fresh store state.
            logger.error(f"Reconciliation pass aborted: {e}", exc_info=True)
            return None
        finally:
            self._pass_lock.release()

    def _run_pass(self, apply: bool = True) -> PassResult:
        config = self.agent.current()
        result = PassResult(started_at=self._clock())
        specs = list(config)
        logger.pass_started(len(specs))

        if self.max_workers == 1 or len(specs) <= 1:
            outcomes = [self.reconcile(spec, apply) for spec in specs]
        else:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(specs)),
                thread_name_prefix="rotator",
            ) as pool:
                outcomes = list(pool.map(lambda spec: self.reconcile(spec, apply), specs))

        for outcome in outcomes:
            result.outcomes[outcome.secret_name] = outcome

        self._disable_clock.prune(config.names())
        result.completed_at = self._clock()
        if not apply:
            return result

        self._pass_count += 1
        self._last_result = result

        logger.pass_completed(
            succeeded=len(result) - len(result.failed),
            failed=len(result.failed),
            duration_seconds=result.duration.total_seconds(),
        )

        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logger.warning(f"Pass callback failed: {e}")

        return result

    def reconcile(self, spec: SecretSpec, apply: bool = True) -> SecretOutcome:
        """
        Bring one secret in line with its declaration.

        Never raises; every failure is recorded on the returned outcome.

        Args:
            spec: Declared secret
            apply: Apply the planned actions (False only plans them)
        """
        outcome = SecretOutcome(secret_name=spec.name)
        try:
            self._reconcile(spec, outcome, apply)
        except Exception as e:
            outcome.fail(FailureKind.UNEXPECTED, f"{type(e).__name__}: {e}")

        if not outcome.success:
            logger.secret_failed(spec.name, outcome.error_kind.value, outcome.error)
        return outcome

    def _reconcile(self, spec: SecretSpec, outcome: SecretOutcome, apply: bool) -> None:
        problems = spec.validate()
        if problems:
            outcome.fail(FailureKind.INVALID_SPEC, "; ".join(problems))
            return

        try:
            provisioner = self.provisioners.get(spec.type)
        except ProvisionerNotFoundError as e:
            outcome.fail(FailureKind.MISSING_PROVISIONER, str(e))
            return

        try:
            versions = self.store.list_versions(spec.name)
        except StoreError as e:
            outcome.fail(FailureKind.STORE_ERROR, str(e))
            return

        now = self._clock()
        deletion_enabled = self.enable_deletion and provisioner.supports_deletion()
        disable_times = self._disable_clock.resolve(spec.name, versions, now)

        outcome.actions = evaluate_lifecycle(
            spec,
            versions,
            now,
            deletion_enabled=deletion_enabled,
            disable_times=disable_times,
        )
        if apply:
            self._apply(spec, provisioner, versions, outcome)

    def _apply(
        self,
        spec: SecretSpec,
        provisioner: SecretProvisioner,
        versions: Sequence[SecretVersion],
        outcome: SecretOutcome,
    ) -> None:
        """Apply planned actions in order, stopping at the first store failure."""
        for action in outcome.actions:
            try:
                if action.action_type == ActionType.DESTROY_VERSION:
                    self.store.destroy_version(spec.name, action.version_id)
                    self._disable_clock.forget(spec.name, action.version_id)

                elif action.action_type == ActionType.DISABLE_VERSION:
                    self.store.disable_version(spec.name, action.version_id)
                    self._disable_clock.record(spec.name, action.version_id, self._clock())

                elif action.action_type == ActionType.CREATE_VERSION:
                    if not self._create(spec, provisioner, versions, outcome, action):
                        continue

            except StoreError as e:
                outcome.fail(FailureKind.STORE_ERROR, f"{action}: {e}")
                return

            outcome.applied.append(action)
            logger.action_applied(spec.name, str(action))

    def _create(
        self,
        spec: SecretSpec,
        provisioner: SecretProvisioner,
        versions: Sequence[SecretVersion],
        outcome: SecretOutcome,
        action: RotationAction,
    ) -> bool:
        try:
            payload = provisioner.generate(spec, list(versions))
        except Exception as e:
            outcome.fail(FailureKind.PROVISIONER_ERROR, f"{action}: {e}")
            return False

        version = self.store.create_version(spec.name, payload)
        logger.debug(f"Created version {version.version_id} of {spec.name}")
        return True

    @property
    def last_result(self) -> PassResult | None:
        return self._last_result

    def get_status(self) -> dict[str, Any]:
        """Get rotator status."""
        return {
            "period_seconds": self.period.total_seconds(),
            "enable_deletion": self.enable_deletion,
            "max_workers": self.max_workers,
            "provisioner_types": self.provisioners.types(),
            "pass_count": self._pass_count,
            "skipped_ticks": self._skipped_ticks,
            "last_result": self._last_result.to_dict() if self._last_result else None,
        }
