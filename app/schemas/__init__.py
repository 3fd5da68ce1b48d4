from .push import (
    BroadcastResponse,
    ChallengeBroadcastRequest,
    DeliveryResponse,
    SendPushRequest,
    SubscriptionCreate,
    SubscriptionResponse,
    UpdateBroadcastRequest,
)

__all__ = [
    "BroadcastResponse",
    "ChallengeBroadcastRequest",
    "DeliveryResponse",
    "SendPushRequest",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "UpdateBroadcastRequest",
]
