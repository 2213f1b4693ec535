"""
workflow.py — Checkout Flow for a Single Order

This module contains the state machine that turns the cart into exactly one
placed order. It reads the CartStore and AddressBook and writes back only through
OrderSubmitter on final confirmation, after which it tells the CartStore to clear.

Workflow Overview:
1. SHIPPING — pick a saved address or type a new one (persisted before leaving the step)
2. PAYMENT — choose COD or UPI (only recorded, no gateway)
3. REVIEW — confirm; totals are recomputed from the live cart at this moment
4. PLACED — terminal; the order id is handed to the caller

If the cart becomes empty while the flow is active, the flow leaves to CART_EMPTY
regardless of the current step. Backward moves (PAYMENT→SHIPPING, REVIEW→PAYMENT)
have no side effects.
"""

import asyncio
import logging

from .errors import CartEmptyError, CheckoutStateError, StorefrontError, ValidationError
from .models import AddressDraft, CheckoutState, CheckoutStep, PaymentMethod, compute_totals

log = logging.getLogger(__name__)


class CheckoutFlow:
    """
    One checkout attempt, owned by the view that created it.

    The flow holds only ids into the CartStore and AddressBook. The items and
    address sent with the order are read from them at placement time.
    """

    def __init__(self, cart, addresses, submitter):
        self.cart = cart
        self.addresses = addresses
        self.submitter = submitter

        self.step = CheckoutStep.SHIPPING
        self.selected_address_id = None
        self.new_address_draft = None
        self.payment_method = PaymentMethod.COD
        self.order_id = None
        self.clear_error = None

        self._submission = None
        self._shipping_lock = asyncio.Lock()
        self._unsubscribe = cart.subscribe(self._on_cart_change)

    @classmethod
    async def enter(cls, cart, addresses, submitter):
        """
        Starts checkout for a non-empty cart.

        Saved addresses are fetched: with none saved the flow starts in new-address
        mode, otherwise the first address (in backend order) is pre-selected.

        Raises:
            CartEmptyError: If the cart is empty.
            StorefrontError: If the addresses could not be loaded.
        """
        if cart.is_empty:
            log.warning("[Checkout] Checkout mit leerem Warenkorb abgelehnt.")
            raise CartEmptyError()

        flow = cls(cart, addresses, submitter)
        try:
            await flow.reload_addresses()
        except StorefrontError:
            flow.close()
            raise
        log.info(f"[Checkout] Gestartet: {cart.item_count} Artikel, Gesamt {flow.totals().totalAmount}.")
        return flow

    @property
    def state(self) -> CheckoutState:
        return CheckoutState(
            step=self.step,
            selectedAddressId=self.selected_address_id,
            newAddressDraft=self.new_address_draft,
            paymentMethod=self.payment_method,
        )

    @property
    def is_active(self) -> bool:
        return self.step not in (CheckoutStep.PLACED, CheckoutStep.CART_EMPTY)

    def totals(self):
        """Subtotal, shipping and total of the live cart. Computed on every call."""
        return compute_totals(self.cart.items)

    # --- SHIPPING ---

    async def reload_addresses(self):
        saved = await self.addresses.list()
        if saved:
            self.select_address(saved[0].id)
        else:
            self.start_new_address()

    def select_address(self, address_id):
        self._require(CheckoutStep.SHIPPING)
        address = self.addresses.get(address_id)
        self.selected_address_id = address.id
        self.new_address_draft = None

    def start_new_address(self):
        self._require(CheckoutStep.SHIPPING)
        self.selected_address_id = None
        self.new_address_draft = AddressDraft()

    def update_draft(self, **fields):
        self._require(CheckoutStep.SHIPPING)
        if self.new_address_draft is None:
            raise CheckoutStateError("No new address is being entered.")
        unknown = set(fields) - set(AddressDraft.model_fields)
        if unknown:
            raise ValidationError(f"Unknown address fields: {', '.join(sorted(unknown))}", fields=sorted(unknown))
        self.new_address_draft = self.new_address_draft.model_copy(update=fields)

    async def continue_to_payment(self):
        """
        SHIPPING → PAYMENT.

        Needs a selected saved address or a complete draft. A draft is created in
        the AddressBook first and then becomes the selection; if that fails the
        flow stays in SHIPPING and the error is raised.

        Raises:
            ValidationError: Missing selection or incomplete draft ("fill all fields").
            StorefrontError: The address could not be saved.
        """
        queued = self._shipping_lock.locked()
        async with self._shipping_lock:
            if queued and self.step is not CheckoutStep.SHIPPING:
                # A second click while the first was still saving the address.
                return self.step
            self._require(CheckoutStep.SHIPPING)

            if self.new_address_draft is not None:
                address = await self.addresses.create(self.new_address_draft)
                self.selected_address_id = address.id
                self.new_address_draft = None
            elif self.selected_address_id is None or not self.addresses.contains(self.selected_address_id):
                log.warning("[Checkout] Keine Lieferadresse gewählt.")
                raise ValidationError("Please select or add a shipping address.", fields=["shippingAddress"])

            if self.step is not CheckoutStep.SHIPPING:
                # Aborted (cart emptied) while the address was being saved.
                return self.step
            self.step = CheckoutStep.PAYMENT
            log.info(f"[Checkout] Lieferadresse {self.selected_address_id} gewählt, weiter zur Zahlung.")
            return self.step

    # --- PAYMENT ---

    def choose_payment(self, method):
        if not self.is_active:
            raise CheckoutStateError(f"Checkout is {self.step.value}.")
        try:
            self.payment_method = PaymentMethod.parse(method)
        except ValueError:
            raise ValidationError(f"Unsupported payment method: {method}", fields=["paymentMethod"]) from None

    def continue_to_review(self):
        self._require(CheckoutStep.PAYMENT)
        if self.payment_method is None:
            raise ValidationError("Please choose a payment method.", fields=["paymentMethod"])
        self.step = CheckoutStep.REVIEW
        return self.step

    def back(self):
        if self.step is CheckoutStep.PAYMENT:
            self.step = CheckoutStep.SHIPPING
        elif self.step is CheckoutStep.REVIEW:
            self.step = CheckoutStep.PAYMENT
        else:
            raise CheckoutStateError(f"Cannot go back from {self.step.value}.")
        return self.step

    # --- REVIEW → PLACED ---

    def resolved_address(self):
        if self.selected_address_id is None or not self.addresses.contains(self.selected_address_id):
            raise ValidationError("No shipping address selected.", fields=["shippingAddress"])
        return self.addresses.get(self.selected_address_id)

    async def place_order(self) -> str:
        """
        REVIEW → PLACED.

        Calls that overlap an in-flight submission wait for that same submission,
        so the backend sees one order request per confirmation. On failure the
        flow stays in REVIEW with the cart untouched; calling again is the retry.

        Returns:
            str: The id of the placed order.
        """
        if self.step is CheckoutStep.PLACED:
            return self.order_id

        submission = self._submission
        if submission is not None and submission.done():
            # Finished and failed after its caller went away; this call is the retry.
            self._submission = submission = None
        if submission is None:
            self._require(CheckoutStep.REVIEW)
            submission = self._submission = asyncio.ensure_future(self._submit())
            submission.add_done_callback(self._on_submission_done)

        try:
            # Shielded: leaving the view must not cancel a request that may create the order.
            return await asyncio.shield(submission)
        finally:
            if self._submission is submission and submission.done() and self.step is not CheckoutStep.PLACED:
                self._submission = None

    def _on_submission_done(self, submission):
        if submission.cancelled():
            return
        error = submission.exception()
        if error is not None:
            log.error(f"[Checkout] Bestellung fehlgeschlagen, Schritt bleibt {self.step.value}: {error}")

    async def _submit(self) -> str:
        items = self.cart.items
        if not items:
            raise CartEmptyError()
        address = self.resolved_address()
        totals = compute_totals(items)

        order_id = await self.submitter.place(items, totals.totalAmount, address)

        self.order_id = order_id
        self.step = CheckoutStep.PLACED
        self._unsubscribe()
        log.info(f"[Order: {order_id}] Checkout abgeschlossen ({self.payment_method.value}, Gesamt {totals.totalAmount}).")

        try:
            await self.cart.clear()
        except StorefrontError as e:
            self.clear_error = e
            log.critical(f"[Order: {order_id}] Bestellung angelegt, aber Warenkorb konnte nicht geleert werden: {e}")
        return order_id

    # --- Lifecycle ---

    def close(self):
        """Detaches from the cart (the view went away). An in-flight order request keeps running."""
        self._unsubscribe()

    def _on_cart_change(self, cart):
        if cart.is_empty and self.is_active:
            log.warning(f"[Checkout] Warenkorb ist leer geworden (Schritt {self.step.value}), Checkout verlassen.")
            self.step = CheckoutStep.CART_EMPTY
            self._unsubscribe()

    def _require(self, step):
        if self.step is not step:
            raise CheckoutStateError(f"Expected checkout step {step.value}, but checkout is at {self.step.value}.")
