"""Named signal catalog and payload schemas.

Signal names and payload keys are the contract between unrelated parts
of the application and are kept verbatim (``donationId``,
``campaignName``). Payloads are validated here before any handler sees
them.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from charityhub.app.exceptions import InvalidSignalPayloadError, UnknownSignalError


class Signal(str, Enum):
    DONATION_SUCCESS = "donation:success"
    DONATION_PENDING = "donation:pending"
    DONATION_ERROR = "donation:error"
    BLOCKCHAIN_CONFIRMED = "blockchain:confirmed"
    BLOCKCHAIN_PENDING = "blockchain:pending"
    CAMPAIGN_GOAL_REACHED = "campaign:goal-reached"
    SYSTEM_MAINTENANCE = "system:maintenance"


class SignalPayload(BaseModel):
    """Base payload: wire keys are accepted by alias or by field name."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DonationSuccessPayload(SignalPayload):
    amount: float = Field(ge=0)
    currency: str = Field(min_length=1)
    method: str = Field(min_length=1)


class DonationPendingPayload(SignalPayload):
    amount: float = Field(ge=0)
    currency: str = Field(min_length=1)


class DonationErrorPayload(SignalPayload):
    message: Optional[str] = None


class BlockchainConfirmedPayload(SignalPayload):
    donation_id: str = Field(alias="donationId", min_length=1)
    amount: float = Field(ge=0)
    currency: str = Field(min_length=1)


class BlockchainPendingPayload(SignalPayload):
    confirmations: int = Field(ge=0)
    required: int = Field(ge=1)


class CampaignGoalReachedPayload(SignalPayload):
    campaign_name: str = Field(alias="campaignName", min_length=1)


class SystemMaintenancePayload(SignalPayload):
    message: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)  # milliseconds


SIGNAL_PAYLOADS: Dict[Signal, Type[SignalPayload]] = {
    Signal.DONATION_SUCCESS: DonationSuccessPayload,
    Signal.DONATION_PENDING: DonationPendingPayload,
    Signal.DONATION_ERROR: DonationErrorPayload,
    Signal.BLOCKCHAIN_CONFIRMED: BlockchainConfirmedPayload,
    Signal.BLOCKCHAIN_PENDING: BlockchainPendingPayload,
    Signal.CAMPAIGN_GOAL_REACHED: CampaignGoalReachedPayload,
    Signal.SYSTEM_MAINTENANCE: SystemMaintenancePayload,
}


def get_signal(name: Union[str, Signal]) -> Signal:
    """Resolve a signal name.

    Raises:
        UnknownSignalError: If the name is not in the catalog.
    """
    try:
        return Signal(name)
    except ValueError:
        raise UnknownSignalError(str(name)) from None


def parse_payload(
    signal: Union[str, Signal], payload: Union[Mapping[str, Any], SignalPayload, None]
) -> SignalPayload:
    """Validate a payload against its signal's schema.

    Raises:
        UnknownSignalError: If the signal is not in the catalog.
        InvalidSignalPayloadError: If the payload does not match the schema.
    """
    signal = get_signal(signal)
    model = SIGNAL_PAYLOADS[signal]
    if isinstance(payload, model):
        return payload
    if isinstance(payload, SignalPayload):
        payload = payload.to_wire()
    try:
        return model.model_validate(payload or {})
    except ValidationError as e:
        raise InvalidSignalPayloadError(
            signal.value,
            e.errors(include_url=False, include_context=False, include_input=False),
        ) from e
