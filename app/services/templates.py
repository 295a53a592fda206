# Built-in Hebrew message templates. Owners can override any notification kind
# with a row in message_templates (template_type = kind) using the same placeholders:
# {customer_name} {service} {date} {time} {employee_name}

from string import Formatter
from typing import Dict, Optional

NOTIFICATION_TEMPLATES: Dict[str, str] = {
    "confirmation": "שלום {customer_name}! פגישתך ל{service} אושרה ל-{date} בשעה {time}. נשמח לראותך!",
    "reminder_24h": (
        "שלום {customer_name}, תזכורת: הפגישה שלך ל{service} מחר ב-{time}. אנחנו מצפים לראותך!\n"
        "נא השיבי \"כן\" לאישור או \"לא\" לביטול."
    ),
    "reminder_3h": (
        "שלום {customer_name}, תזכורת: הפגישה שלך ל{service} היום ב-{time} (בעוד כ-3 שעות). נשמח לראותך!\n"
        "נא השיבי \"כן\" לאישור או \"לא\" לביטול."
    ),
    "cancellation": "שלום {customer_name}, הפגישה שלך ל{service} ב-{date} בשעה {time} בוטלה בהצלחה.",
    "waiting_list": (
        "שלום {customer_name}! התפנה מקום עבור טיפול {service} ב-{date} בשעה {time}. "
        "התור יינתן למי שיקבע ראשון, ליצירת קשר וקביעת תור התקשר/י אלינו."
    ),
}

DEFAULT_TEMPLATE = "שלום {customer_name}, הודעה בנוגע לפגישה שלך ל{service} ב-{date} בשעה {time}."

CANCELLATION_LINK_TEMPLATE = "\nלביטול התור: {link}"

CANCELLATION_REASON_TEMPLATE = "הפגישה בוטלה. סיבה: {reason}"

REPLY_CONFIRMED_TEMPLATE = """תודה {customer_name}! ✅
התור שלך ב-{date} בשעה {time} אושר בהצלחה.
נתראה בקרוב! 💅
{business_name}"""

REPLY_CANCELLED_TEMPLATE = """שלום {customer_name},
התור שלך ב-{date} בשעה {time} בוטל בהצלחה. ❌
לקביעת תור חדש אנא צרי איתנו קשר.
תודה על ההבנה! 🙏
{business_name}"""

REPLY_UNKNOWN_TEMPLATE = """שלום {customer_name},
לא הבנתי את התשובה שלך. 🤔
אנא השיבי:
• "כן" או "אישור" - לאישור התור
• "לא" או "ביטול" - לביטול התור
תודה!
{business_name}"""

DAILY_SUMMARY_TEMPLATE = """סיכום יומי ל-{date}:

📅 פגישות:
✅ הושלמו: {completed}
❌ בוטלו: {cancelled}

💰 כספים:
📈 הכנסות: ₪{revenue}
📉 הוצאות: ₪{expenses}
💵 רווח נטו: ₪{net}"""

DEFAULT_BUSINESS_NAME = "העסק"


class _KeepMissing(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def render(template: str, **values: Optional[str]) -> str:
    """
    Substitutes placeholders. Unknown placeholders in owner-supplied templates
    are left as written instead of raising.
    """
    known = {k: ("" if v is None else v) for k, v in values.items()}
    try:
        fields = {name for _, name, _, _ in Formatter().parse(template) if name}
        if any(not name.isidentifier() for name in fields):
            return template
        return template.format_map(_KeepMissing(known))
    except ValueError:
        # Unbalanced braces in an owner template
        return template


def notification_template(kind: str, override: Optional[str] = None) -> str:
    if override:
        return override
    return NOTIFICATION_TEMPLATES.get(kind, DEFAULT_TEMPLATE)
