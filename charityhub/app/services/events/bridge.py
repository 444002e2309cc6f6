"""Bridge from catalog signals to user-visible notifications.

The bridge listens for the fixed signal catalog and turns each signal
into a notification with a deterministic shape. It also exposes emitters
so the code that knows an event happened never talks to the
notification center directly.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from charityhub.app.core.logging import get_log_context, get_logger
from charityhub.app.core.scheduler import Scheduler
from charityhub.app.exceptions import InvalidSignalPayloadError
from charityhub.app.services.events.bus import EventBus, Payload
from charityhub.app.services.events.signals import (
    BlockchainConfirmedPayload,
    BlockchainPendingPayload,
    CampaignGoalReachedPayload,
    DonationErrorPayload,
    DonationPendingPayload,
    DonationSuccessPayload,
    Signal,
    SignalPayload,
    SystemMaintenancePayload,
    parse_payload,
)
from charityhub.app.services.notifications.center import NotificationCenter
from charityhub.app.services.notifications.models import NotificationType

logger = get_logger(__name__)

DEFAULT_DONATION_ERROR = "There was an error processing your donation. Please try again."
DEFAULT_MAINTENANCE_MESSAGE = (
    "The system will undergo maintenance shortly. "
    "Some features may be temporarily unavailable."
)
DEFAULT_MAINTENANCE_DURATION_MS = 15_000


@dataclass(frozen=True)
class NotificationSpec:
    type: NotificationType
    title: str
    message: str
    duration: int


def format_amount(amount: float) -> str:
    """Plain decimal rendering: 100.0 -> '100', 0.005 -> '0.005'."""
    return format(Decimal(str(amount)).normalize(), "f")


def _donation_success(p: DonationSuccessPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.SUCCESS,
        "Donation Successful!",
        f"Thank you for your {p.currency} {format_amount(p.amount)} donation via {p.method}.",
        7000,
    )


def _donation_pending(p: DonationPendingPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.INFO,
        "Donation Pending",
        f"Your {p.currency} {format_amount(p.amount)} donation is pending blockchain confirmation.",
        10_000,
    )


def _donation_error(p: DonationErrorPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.ERROR,
        "Donation Failed",
        p.message or DEFAULT_DONATION_ERROR,
        0,
    )


def _blockchain_confirmed(p: BlockchainConfirmedPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.SUCCESS,
        "Payment Confirmed!",
        f"Your {p.currency} {format_amount(p.amount)} cryptocurrency donation "
        "has been confirmed on the blockchain.",
        8000,
    )


def _blockchain_pending(p: BlockchainPendingPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.INFO,
        "Awaiting Confirmations",
        f"{p.confirmations}/{p.required} blockchain confirmations received. Please wait...",
        5000,
    )


def _campaign_goal_reached(p: CampaignGoalReachedPayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.SUCCESS,
        "Campaign Goal Reached!",
        f'The "{p.campaign_name}" campaign has reached its funding goal! '
        "Thank you for your support.",
        10_000,
    )


def _system_maintenance(p: SystemMaintenancePayload) -> NotificationSpec:
    return NotificationSpec(
        NotificationType.WARNING,
        "System Maintenance",
        p.message or DEFAULT_MAINTENANCE_MESSAGE,
        p.duration or DEFAULT_MAINTENANCE_DURATION_MS,
    )


RENDERERS: Dict[Signal, Callable[..., NotificationSpec]] = {
    Signal.DONATION_SUCCESS: _donation_success,
    Signal.DONATION_PENDING: _donation_pending,
    Signal.DONATION_ERROR: _donation_error,
    Signal.BLOCKCHAIN_CONFIRMED: _blockchain_confirmed,
    Signal.BLOCKCHAIN_PENDING: _blockchain_pending,
    Signal.CAMPAIGN_GOAL_REACHED: _campaign_goal_reached,
    Signal.SYSTEM_MAINTENANCE: _system_maintenance,
}


def render_signal(signal: Signal, payload: SignalPayload) -> NotificationSpec:
    return RENDERERS[signal](payload)


class NotificationEventBridge:
    """Listens for catalog signals and emits them on behalf of callers.

    ``attach`` is idempotent: handlers are registered exactly once per
    bridge no matter how often it is called.
    """

    def __init__(self, bus: EventBus, center: NotificationCenter):
        self.bus = bus
        self.center = center
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def attached(self) -> bool:
        return bool(self._unsubscribers)

    def attach(self) -> None:
        if self.attached:
            return
        for signal in RENDERERS:
            self._unsubscribers.append(self.bus.subscribe(signal, self._handle))
        logger.info(f"Notification bridge listening for {len(RENDERERS)} signals")

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def _handle(self, signal: Signal, payload: Payload) -> Optional[str]:
        try:
            parsed = parse_payload(signal, payload)
        except InvalidSignalPayloadError as e:
            # Invalid payloads create no notification
            logger.warning(
                f"Dropping '{signal.value}' signal with invalid payload: {e.errors}",
                extra=get_log_context(signal=signal.value),
            )
            return None

        spec = render_signal(signal, parsed)
        return await self.center.show(spec.type, spec.title, spec.message, spec.duration)

    # Emitters

    async def notify_donation_success(self, amount: float, currency: str, method: str) -> int:
        return await self.bus.publish(
            Signal.DONATION_SUCCESS,
            {"amount": amount, "currency": currency, "method": method},
        )

    async def notify_donation_pending(self, amount: float, currency: str) -> int:
        return await self.bus.publish(
            Signal.DONATION_PENDING, {"amount": amount, "currency": currency}
        )

    async def notify_donation_error(self, message: Optional[str] = None) -> int:
        return await self.bus.publish(Signal.DONATION_ERROR, {"message": message})

    async def notify_blockchain_confirmed(
        self, donation_id: str, amount: float, currency: str
    ) -> int:
        return await self.bus.publish(
            Signal.BLOCKCHAIN_CONFIRMED,
            {"donationId": donation_id, "amount": amount, "currency": currency},
        )

    async def notify_blockchain_pending(self, confirmations: int, required: int) -> int:
        return await self.bus.publish(
            Signal.BLOCKCHAIN_PENDING,
            {"confirmations": confirmations, "required": required},
        )

    async def notify_campaign_goal_reached(self, campaign_name: str) -> int:
        return await self.bus.publish(
            Signal.CAMPAIGN_GOAL_REACHED, {"campaignName": campaign_name}
        )

    async def notify_system_maintenance(
        self, message: Optional[str] = None, duration: Optional[int] = None
    ) -> int:
        return await self.bus.publish(
            Signal.SYSTEM_MAINTENANCE, {"message": message, "duration": duration}
        )

    def show_sample_notifications(self, scheduler: Scheduler) -> int:
        """Schedule the demo sequence used to preview notifications.

        Returns:
            Number of signals scheduled
        """
        samples = [
            (500, lambda: self.notify_donation_success(100, "USD", "PayPal")),
            (2000, lambda: self.notify_donation_pending(0.005, "BTC")),
            (4000, lambda: self.notify_blockchain_pending(2, 6)),
            (6000, lambda: self.notify_blockchain_confirmed("donation_123", 0.005, "BTC")),
            (8000, lambda: self.notify_campaign_goal_reached("Feed 100 Widows Before Christmas")),
        ]
        for delay_ms, emit in samples:
            scheduler.call_later(delay_ms, emit)
        return len(samples)
