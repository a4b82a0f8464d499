"""
Entitlement state machine.

Tracks whether the user holds a verified subscription and how much of the
free tier they have used. Purchases, restores and the provider's background
transaction stream all funnel into the same serialized state mutations.

Phases: UNKNOWN -> FREE <-> ENTITLED. Within a process, ENTITLED is never
left; a lapsed or refunded subscription is only observed by reconciling
against the provider on the next start.
"""

import asyncio
import dataclasses
import threading
from typing import Any, Callable, Optional

from ..config.defaults import EntitlementParams
from ..errors import (
    NothingToRestoreError,
    PersistenceError,
    ProductLoadError,
    PurchaseFailedError,
    PurchasePendingError,
    PurchaseUnverifiedError,
    RestoreFailedError,
    UnknownProductError,
)
from ..logging.config import get_entitlement_logger, log_gate_decision, log_state_transition
from ..models.entitlement import (
    EntitlementPhase,
    EntitlementState,
    Product,
    PurchaseOutcome,
    TransactionUpdate,
)
from ..persistence.entitlement_store import EntitlementStore
from ..sync.notifier import ChangeNotifier
from .products import ProductCatalog
from .provider import PurchaseProvider

entitlement_logger = get_entitlement_logger(__name__)


class EntitlementEngine:
    """
    Owns EntitlementState and answers gating queries.

    All read-modify-write of the state happens under one lock, with no
    awaits inside, so recording a transaction id, flipping entitlement and
    persisting happen as a unit.
    """

    def __init__(
        self,
        store: EntitlementStore,
        provider: PurchaseProvider,
        params: Optional[EntitlementParams] = None
    ) -> None:
        self.store = store
        self.provider = provider
        self.params = params or EntitlementParams()
        self.catalog = ProductCatalog(self.params)
        self.logger = entitlement_logger
        self.notifier: ChangeNotifier[EntitlementState] = ChangeNotifier("entitlement")

        self._state = EntitlementState()
        self._phase = EntitlementPhase.UNKNOWN
        self._products: list[Product] = []
        self._verified_this_session = False
        self._reserved_free_actions = 0
        self._lock = threading.Lock()
        self._listener_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Load persisted state, reconcile with the provider and start the
        background transaction listener.
        """
        if self._listener_task is not None:
            return

        self._ensure_loaded()

        try:
            await self.load_products()
        except ProductLoadError:
            pass  # Already logged; purchases fall back to catalog products

        try:
            await self.reconcile(trigger="startup")
        except Exception as e:
            self.logger.warning(
                "Reconciliation failed, keeping persisted entitlement",
                has_active_entitlement=self._state.has_active_entitlement,
                error=str(e)
            )

        self._listener_task = asyncio.create_task(
            self._listen(), name="entitlement-transaction-listener"
        )

    async def stop(self) -> None:
        """Cancel the background listener and wait for it to finish."""
        task = self._listener_task
        self._listener_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        self.logger.info("Entitlement engine stopped")

    @property
    def running(self) -> bool:
        return self._listener_task is not None and not self._listener_task.done()

    async def __aenter__(self) -> "EntitlementEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Provider-facing operations
    # ------------------------------------------------------------------

    async def load_products(self) -> list[Product]:
        """
        Fetch the recognized products from the provider, display ordered.

        Raises:
            ProductLoadError: If the provider request fails
        """
        product_ids = self.catalog.product_ids
        try:
            products = await self.provider.list_products(product_ids)
        except Exception as e:
            self.logger.error("Failed to load products", product_ids=product_ids, error=str(e))
            raise ProductLoadError(f"Failed to load products: {e}") from e

        recognized = [p for p in products if self.catalog.is_recognized(p.id)]
        self._products = self.catalog.sort_products(recognized)

        if not self._products:
            self.logger.warning("No subscription products found", product_ids=product_ids)
        else:
            self.logger.info("Products loaded", product_ids=[p.id for p in self._products])
        return list(self._products)

    async def reconcile(self, trigger: str = "reconcile") -> bool:
        """
        Compare local state with the provider's current entitlements.

        The provider is ground truth: a verified, recognized entitlement
        grants access. An empty set clears a persisted claim, unless
        entitlement was already verified during this session.

        Returns:
            True if the provider reports an active entitlement

        Raises:
            Exception: Whatever the provider raises
        """
        current = await self.provider.current_entitlements()
        active = [
            t for t in current
            if t.verified and self.catalog.is_recognized(t.product_id)
        ]

        with self._lock:
            self._ensure_loaded_locked()
            state = self._state
            if active:
                new_state = state.with_entitlement(True)
                new_state = dataclasses.replace(
                    new_state,
                    known_transaction_ids=new_state.known_transaction_ids
                    | {t.transaction_id for t in active},
                )
                self._verified_this_session = True
            elif self._verified_this_session:
                new_state = state
            else:
                new_state = state.with_entitlement(False)

            changed = self._commit_locked(new_state, trigger, {
                "active_products": sorted({t.product_id for t in active}),
            })

        self.logger.info(
            "Entitlements reconciled",
            trigger=trigger,
            active=len(active),
            has_active_entitlement=new_state.has_active_entitlement
        )
        if changed:
            self._publish()
        return bool(active)

    async def purchase(self, product_id: str) -> None:
        """
        Purchase ``product_id``.

        Does nothing if the user is already entitled. A cancelled purchase
        returns without error and leaves state unchanged.

        Raises:
            UnknownProductError: ``product_id`` is not a recognized product
            PurchaseFailedError: The provider failed to process the purchase
            PurchasePendingError: The purchase awaits external approval
            PurchaseUnverifiedError: The transaction could not be verified
        """
        self._ensure_loaded()
        if self.is_entitled:
            self.logger.info("Purchase skipped, already entitled", product_id=product_id)
            return

        if not self.catalog.is_recognized(product_id):
            raise UnknownProductError(f"Unknown product: {product_id}", product_id=product_id)

        product = self._product_for(product_id)
        try:
            result = await self.provider.purchase(product)
        except Exception as e:
            self.logger.error("Purchase failed", product_id=product_id, error=str(e))
            raise PurchaseFailedError(
                f"Failed to make purchase: {e}", product_id=product_id
            ) from e

        if result.outcome == PurchaseOutcome.CANCELLED:
            self.logger.info("Purchase cancelled by user", product_id=product_id)
            return

        if result.outcome == PurchaseOutcome.PENDING:
            self.logger.info("Purchase pending approval", product_id=product_id)
            raise PurchasePendingError("Purchase is pending approval.", product_id=product_id)

        entitled_product = result.product_id or product_id
        if (result.outcome != PurchaseOutcome.VERIFIED or not result.transaction_id
                or not self.catalog.is_recognized(entitled_product)):
            self.logger.warning(
                "Purchase verification failed",
                product_id=product_id,
                outcome=result.outcome.value,
                transaction_id=result.transaction_id
            )
            raise PurchaseUnverifiedError(
                "Transaction verification failed.",
                transaction_id=result.transaction_id,
                product_id=product_id
            )

        self._apply_transaction(result.transaction_id, entitled_product, trigger="purchase")

    async def restore_purchases(self) -> None:
        """
        Sync purchases with the provider and reconcile.

        Raises:
            RestoreFailedError: The provider sync or entitlement query failed
            NothingToRestoreError: The sync worked but found no entitlement
        """
        try:
            await self.provider.restore_purchases()
            has_entitlement = await self.reconcile(trigger="restore")
        except Exception as e:
            self.logger.error("Restore failed", error=str(e))
            raise RestoreFailedError(f"Failed to restore purchases: {e}") from e

        if not has_entitlement:
            self.logger.info("No purchases to restore")
            raise NothingToRestoreError("No purchases to restore.")

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def consume_free_action(self) -> bool:
        """
        Ask to perform one gated action and count it at once (tracking a flight).

        Entitled users always pass without using quota. Free users pass,
        and use one action, while quota remains.

        Returns:
            True if the action is allowed
        """
        with self._lock:
            allowed, reason = self._gate_locked()
            changed = reason == "free_quota_available"
            if changed:
                self._commit_locked(self._state.with_free_action_used(), "free_action", None)

        self._log_gate(allowed, reason)
        if changed:
            self._publish()
        return allowed

    def reserve_free_action(self) -> bool:
        """
        Gate an action whose quota use depends on its outcome.

        A free user's pass holds one action in reserve so concurrent callers
        cannot share the last one. Follow with ``commit_free_action`` once
        the action succeeds or ``release_free_action`` if it fails.

        Returns:
            True if the action is allowed
        """
        with self._lock:
            allowed, reason = self._gate_locked()
            if reason == "free_quota_available":
                self._reserved_free_actions += 1

        self._log_gate(allowed, reason)
        return allowed

    def commit_free_action(self) -> None:
        """Count a reserved action as used. Entitled users are not charged."""
        with self._lock:
            if self._reserved_free_actions == 0:
                return
            self._reserved_free_actions -= 1
            if self._state.has_active_entitlement:
                return
            self._commit_locked(self._state.with_free_action_used(), "free_action", None)

        self._publish()

    def release_free_action(self) -> None:
        """Return a reserved action to the free quota."""
        with self._lock:
            if self._reserved_free_actions:
                self._reserved_free_actions -= 1

    def _gate_locked(self) -> tuple[bool, str]:
        """Decide a gated action. Caller holds ``self._lock``."""
        self._ensure_loaded_locked()
        state = self._state
        if state.has_active_entitlement:
            return True, "entitled"
        held = state.free_actions_used + self._reserved_free_actions
        if held < self.params.free_action_quota:
            return True, "free_quota_available"
        return False, "free_quota_exhausted"

    def _log_gate(self, allowed: bool, reason: str) -> None:
        with self._lock:
            used = self._state.free_actions_used
            reserved = self._reserved_free_actions
        log_gate_decision(
            self.logger,
            gate_name="free_action",
            passed=allowed,
            reason=reason,
            context={
                "free_actions_used": used,
                "reserved": reserved,
                "quota": self.params.free_action_quota,
            }
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> EntitlementState:
        with self._lock:
            self._ensure_loaded_locked()
            return self._state

    @property
    def phase(self) -> EntitlementPhase:
        with self._lock:
            return self._phase

    @property
    def is_entitled(self) -> bool:
        return self.state.has_active_entitlement

    @property
    def free_actions_remaining(self) -> Optional[int]:
        """Free actions left; None when entitled (no limit applies)."""
        state = self.state
        if state.has_active_entitlement:
            return None
        return max(0, self.params.free_action_quota - state.free_actions_used)

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    def subscribe(self, callback: Callable[[EntitlementState], None]) -> Callable[[], None]:
        """Register for entitlement change notifications."""
        return self.notifier.subscribe(callback)

    # ------------------------------------------------------------------
    # Background listener
    # ------------------------------------------------------------------

    async def _listen(self) -> None:
        """
        Apply provider transaction events until cancelled.

        A failing stream is logged and subscribed to again after
        ``listener_retry_seconds``. The listener ends on its own only when
        the provider closes the stream.
        """
        self.logger.info("Transaction listener started")
        failures = 0
        try:
            while True:
                try:
                    async for update in self.provider.transaction_updates():
                        failures = 0
                        try:
                            self.handle_transaction_update(update)
                        except Exception as e:
                            self.logger.error(
                                "Failed to handle transaction update",
                                transaction_id=getattr(update, "transaction_id", None),
                                error=str(e)
                            )
                    break
                except Exception as e:
                    failures += 1
                    self.logger.error(
                        "Transaction update stream failed, resubscribing",
                        failures=failures,
                        retry_seconds=self.params.listener_retry_seconds,
                        error=str(e)
                    )
                    await asyncio.sleep(self.params.listener_retry_seconds)
        except asyncio.CancelledError:
            self.logger.info("Transaction listener cancelled")
            raise

        self.logger.info("Transaction listener stopped, stream closed")

    def handle_transaction_update(self, update: TransactionUpdate) -> bool:
        """
        Process one transaction event from the provider stream.

        Returns:
            True if the event changed the recorded transactions
        """
        if not update.verified:
            self.logger.warning(
                "Ignoring unverified transaction",
                transaction_id=update.transaction_id,
                product_id=update.product_id
            )
            return False

        if not self.catalog.is_recognized(update.product_id):
            self.logger.warning(
                "Ignoring transaction for unrecognized product",
                transaction_id=update.transaction_id,
                product_id=update.product_id
            )
            return False

        return self._apply_transaction(
            update.transaction_id, update.product_id, trigger="transaction_update"
        )

    # ------------------------------------------------------------------
    # State mutation
    # ------------------------------------------------------------------

    def _apply_transaction(self, transaction_id: str, product_id: str, trigger: str) -> bool:
        """Record a verified transaction once; grants entitlement."""
        with self._lock:
            self._ensure_loaded_locked()
            if self._state.knows(transaction_id):
                self.logger.debug(
                    "Duplicate transaction ignored",
                    transaction_id=transaction_id,
                    trigger=trigger
                )
                return False

            self._verified_this_session = True
            self._commit_locked(self._state.with_transaction(transaction_id), trigger, {
                "transaction_id": transaction_id,
                "product_id": product_id,
            })

        self._publish()
        return True

    def _commit_locked(
        self,
        new_state: EntitlementState,
        trigger: str,
        context: Optional[dict[str, Any]]
    ) -> bool:
        """Replace and persist the state. Caller holds ``self._lock``."""
        old_phase = self._phase
        changed = new_state != self._state
        self._state = new_state
        self._phase = (
            EntitlementPhase.ENTITLED if new_state.has_active_entitlement
            else EntitlementPhase.FREE
        )

        if changed:
            try:
                self.store.save(new_state)
            except PersistenceError as e:
                self.logger.error(
                    "Failed to persist entitlement state",
                    trigger=trigger,
                    error=str(e)
                )

        if old_phase != self._phase:
            log_state_transition(
                self.logger,
                from_state=old_phase.value,
                to_state=self._phase.value,
                trigger=trigger,
                context=context
            )
        return changed

    def _ensure_loaded(self) -> None:
        with self._lock:
            self._ensure_loaded_locked()

    def _ensure_loaded_locked(self) -> None:
        """Leave UNKNOWN by loading the persisted state. Caller holds the lock."""
        if self._phase != EntitlementPhase.UNKNOWN:
            return

        self._state = self.store.load()
        self._phase = (
            EntitlementPhase.ENTITLED if self._state.has_active_entitlement
            else EntitlementPhase.FREE
        )
        log_state_transition(
            self.logger,
            from_state=EntitlementPhase.UNKNOWN.value,
            to_state=self._phase.value,
            trigger="load",
            context={"free_actions_used": self._state.free_actions_used}
        )

    def _product_for(self, product_id: str) -> Product:
        for product in self._products:
            if product.id == product_id:
                return product

        configured = self.catalog.get(product_id)
        return Product(
            id=product_id,
            display_name=configured.display_name if configured else product_id,
            has_intro_trial=configured.has_intro_trial if configured else False,
        )

    def _publish(self) -> None:
        self.notifier.publish(self.state)
