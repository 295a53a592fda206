import enum

class NotificationKind(str, enum.Enum):
    CONFIRMATION = "confirmation"
    REMINDER_24H = "reminder_24h"
    REMINDER_3H = "reminder_3h"
    CANCELLATION = "cancellation"
    WAITING_LIST = "waiting_list"
    CUSTOM = "custom"

# Kinds whose message carries a self-service cancellation link
KINDS_WITH_CANCEL_LINK = {NotificationKind.CONFIRMATION, NotificationKind.REMINDER_24H}

# Kinds that are not about the appointment row itself and never flag it
KINDS_WITHOUT_APPOINTMENT_FLAGS = {NotificationKind.WAITING_LIST, NotificationKind.CUSTOM}

REMINDER_FLAGS = {
    NotificationKind.REMINDER_24H: "reminder_24h_sent",
    NotificationKind.REMINDER_3H: "reminder_3h_sent",
}

class Channel(str, enum.Enum):
    WHATSAPP = "whatsapp"
    SMS = "sms"
    DASHBOARD = "dashboard"

class ChannelStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    DISABLED = "disabled"
    NOT_ATTEMPTED = "not_attempted"

class LogStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    RECEIVED = "received"
    UNMATCHED = "unmatched"
