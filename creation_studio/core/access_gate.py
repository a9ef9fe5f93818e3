"""
Access gate for generation requests.

Admits or denies each mutating operation before any state changes.

Decision Order:
1. Session - No resolved owner means the request is denied outright
2. Paid tier - Paid owners are always admitted
3. Free quota - Owners below the free allowance are admitted; everyone
   else is denied with a fresh price quote for this exact request
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from .pricing import DEFAULT_COST_MODEL, CostModel, PriceQuote, quote
from .usage_ledger import UsageLedger

logger = logging.getLogger(__name__)

FREE_GENERATIONS = 1


class DenialReason(Enum):
    """Why a request was not admitted."""
    NO_SESSION = auto()        # Caller must sign in before retrying
    PAYMENT_REQUIRED = auto()  # Caller must show the quote and collect payment


@dataclass(frozen=True)
class AccessRequest:
    """The request being gated, kept so it can be retried after payment."""
    prompt_text: str
    existing_content: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorize call. Denials are values, not exceptions."""
    request: AccessRequest
    reason: Optional[DenialReason] = None
    quote: Optional[PriceQuote] = None

    @property
    def admitted(self) -> bool:
        return self.reason is None

    @property
    def payment_required(self) -> bool:
        return self.reason == DenialReason.PAYMENT_REQUIRED


@dataclass(frozen=True)
class PaymentConfirmed:
    """External confirmation that the owner paid."""
    reference: str


@dataclass(frozen=True)
class PaymentFailed:
    """External report that a payment attempt did not go through."""
    reason: str


PaymentResult = Union[PaymentConfirmed, PaymentFailed]


class AccessGate:
    """Combines the usage ledger and pricing engine into admit/deny decisions.

    Admission never increments usage; callers increment only after the
    gated operation succeeds.
    """

    def __init__(
        self,
        ledger: UsageLedger,
        cost_model: CostModel = DEFAULT_COST_MODEL,
        free_generations: int = FREE_GENERATIONS
    ):
        if free_generations < 0:
            raise ValueError("free_generations must be >= 0")
        self.ledger = ledger
        self.cost_model = cost_model
        self.free_generations = free_generations

    def authorize(
        self,
        owner_id: Optional[str],
        prompt_text: str,
        existing_content: Optional[str] = None
    ) -> Decision:
        """Decide whether a request may proceed.

        Args:
            owner_id: Resolved owner, or None when nobody is signed in
            prompt_text: Instruction being gated
            existing_content: Content the request would edit, if any

        Returns:
            Decision: admitted, or denied with a reason (and a quote when
            payment is required)
        """
        request = AccessRequest(prompt_text=prompt_text, existing_content=existing_content)

        if not owner_id:
            logger.info("Denied request: no session")
            return Decision(request=request, reason=DenialReason.NO_SESSION)

        usage = self.ledger.get_usage(owner_id)
        if usage.paid_tier or usage.generations_consumed < self.free_generations:
            logger.info("Admitted request for %s", owner_id)
            return Decision(request=request)

        price = quote(prompt_text, existing_content, self.cost_model)
        logger.info(
            "Denied request for %s: payment required (%s, $%.2f)",
            owner_id, price.complexity_tier.value, price.amount
        )
        return Decision(request=request, reason=DenialReason.PAYMENT_REQUIRED, quote=price)

    def settle_payment(
        self,
        owner_id: Optional[str],
        denied: Decision,
        payment: PaymentResult
    ) -> Decision:
        """Feed a payment result back into the gate.

        A confirmed payment upgrades the owner and re-authorizes the exact
        request carried by the denial. A failed payment returns the
        original denial unchanged.

        Raises:
            ValueError: If the decision is not a payment-required denial
            NoSession: If no owner is resolved
        """
        if not denied.payment_required:
            raise ValueError("Only payment-required denials can be settled")

        if isinstance(payment, PaymentFailed):
            logger.info("Payment failed for %s: %s", owner_id, payment.reason)
            return denied

        self.ledger.upgrade(owner_id)
        return self.authorize(owner_id, denied.request.prompt_text, denied.request.existing_content)
