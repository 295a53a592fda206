import enum

class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ConfirmationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class CancellationChannel(str, enum.Enum):
    TOKEN = "token"
    WHATSAPP = "whatsapp"
    ADMIN = "admin"

class CalendarAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

class WaitingListStatus(str, enum.Enum):
    WAITING = "waiting"
    NOTIFIED = "notified"

# Embedded customer relation selected with every appointment row
APPOINTMENT_SELECT = "*, customers:customer_id (id, full_name, email, phone_number)"
