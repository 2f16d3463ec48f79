"""
utils/constants.py

Purpose: Centralized static content

- Default slot tables and settings values
- Email templates and Telegram message bodies
- User log action labels

(Prevents hardcoding across the codebase)
"""

# ============================================================
# SLOTS
# ============================================================

DEFAULT_SLOT_PRICING = {
    "Morning": 1000,
    "Afternoon": 1200,
    "Evening": 1500,
    "12Hour": 1800,
    "24Hour": 2500,
}

DEFAULT_SLOT_TIMINGS = {
    "Morning": "6:00 AM - 12:00 PM",
    "Afternoon": "12:00 PM - 6:00 PM",
    "Evening": "6:00 PM - 12:00 AM",
    "12Hour": "6:00 AM - 6:00 PM",
    "24Hour": "24 Hours Access",
}


# ============================================================
# USER LOG ACTIONS
# ============================================================

SYSTEM_ACTOR = "system"

LOG_USER_REGISTERED = "User registered"
LOG_FEE_MARKED_PAID = "Fee marked as paid"
LOG_FEE_STATUS_CHANGED = "Fee status changed from {old} to {new}"
LOG_SEAT_CHANGED = "Seat changed from {old_seat} ({old_slot}) to {new_seat} ({new_slot})"
LOG_USER_UPDATED = "User updated: {fields}"
LOG_USER_DELETED = "User deleted by admin - Seat {seat_number} freed"
LOG_USER_DELETED_UNSEATED = "User deleted by admin"


# ============================================================
# EMAIL
# ============================================================

EMAIL_SUBJECT_WELCOME = "Welcome to VidhyaDham - Registration Confirmed"
EMAIL_SUBJECT_DUE_REMINDER = "VidhyaDham - Payment Due Reminder"
EMAIL_SUBJECT_PAYMENT_CONFIRMATION = "VidhyaDham - Payment Received"
EMAIL_SUBJECT_TEST = "VidhyaDham - Email Test"

EMAIL_TEST_BODY = (
    "This is a test email from VidhyaDham seat management system. "
    "If you received this, email configuration is working correctly!"
)

DEFAULT_WELCOME_EMAIL_TEMPLATE = """Dear {{name}},

Welcome to VidhyaDham Library! Your registration is confirmed.

Your details:
- Seat Number: {{seatNumber}}
- Time Slot: {{slot}}
- Phone: {{phone}}
- ID Type: {{idType}}

Your membership is valid till {{validTill}}.

Happy studying!
VidhyaDham Team"""

DEFAULT_DUE_DATE_EMAIL_TEMPLATE = """Dear {{name}},

This is a gentle reminder that your seat subscription is due for renewal.

Your details:
- Seat Number: {{seatNumber}}
- Time Slot: {{slot}}
- Due Date: {{dueDate}}

Failure to renew within 3 days of this message will result in automatic termination of your seat.

VidhyaDham Team"""

DEFAULT_PAYMENT_CONFIRMATION_EMAIL_TEMPLATE = """Dear {{name}},

We have received your payment of Rs. {{amount}} for seat {{seatNumber}} ({{slot}}).

Your membership is now valid till {{validTill}}.

Thank you!
VidhyaDham Team"""

SMTP_PRESETS = {
    "gmail": {"host": "smtp.gmail.com", "port": 587, "secure": False},
    "outlook": {"host": "smtp-mail.outlook.com", "port": 587, "secure": False},
}


# ============================================================
# TELEGRAM
# ============================================================

DEFAULT_TELEGRAM_BOT_NAME = "VidhyaDham Bot"

TELEGRAM_DIVIDER = "━━━━━━━━━━━━━━━━━━━━"

TELEGRAM_NEW_USER = f"""🎉 <b>NEW USER REGISTRATION</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
📧 <b>Email:</b> {{email}}
📱 <b>Phone:</b> {{phone}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
📅 <b>Registration Date:</b> {{date}}

💳 <b>Fee Status:</b> {{fee_status}}
{TELEGRAM_DIVIDER}
📚 <b>Welcome to VidhyaDham Library!</b>"""

TELEGRAM_FEE_DUE = f"""{{urgency}} <b>FEE PAYMENT REMINDER</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
📅 <b>Due Date:</b> {{due_date}}
⏳ <b>Days Remaining:</b> {{days_left}}

{TELEGRAM_DIVIDER}
📞 <i>Please contact admin for payment details</i>"""

TELEGRAM_FEE_PAID = f"""✅ <b>PAYMENT CONFIRMATION</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
💰 <b>Amount Paid:</b> ₹{{amount}}
📅 <b>Next Due Date:</b> {{due_date}}

{TELEGRAM_DIVIDER}
💚 <b>Thank you for your payment!</b>"""

TELEGRAM_FEE_OVERDUE = f"""🚨 <b>PAYMENT OVERDUE ALERT</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
📅 <b>Due Date:</b> {{due_date}}
⏳ <b>Days Overdue:</b> {{days_overdue}}

{TELEGRAM_DIVIDER}
⚠️ <b>Action Required:</b> Contact user immediately"""

TELEGRAM_USER_DELETED = f"""🗑️ <b>USER ACCOUNT DELETED</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
📧 <b>Email:</b> {{email}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
📅 <b>Deleted Date:</b> {{date}}

🆓 <b>Seat Status:</b> Available for new registrations"""

TELEGRAM_USER_UPDATED = f"""✏️ <b>USER INFORMATION UPDATED</b>
{TELEGRAM_DIVIDER}

👤 <b>Name:</b> {{name}}
📧 <b>Email:</b> {{email}}
🪑 <b>Seat Number:</b> #{{seat_number}}
⏰ <b>Time Slot:</b> {{slot}}
📝 <b>Change:</b> {{action}}"""

TELEGRAM_BOT_TEST = f"""🤖 <b>TELEGRAM BOT TEST</b>
{TELEGRAM_DIVIDER}

✅ <b>Status:</b> Bot is working correctly!
📅 <b>Test Date:</b> {{date}}

• Silent Mode: {{silent}}
• Content Protection: {{protect}}
{TELEGRAM_DIVIDER}
📚 <b>VidhyaDham Library Admin Panel</b>"""


# ============================================================
# UPLOADS
# ============================================================

UPLOAD_INVALID_TYPE = "Invalid file type. Only JPG, PNG, and PDF files are allowed."
UPLOAD_TOO_LARGE = "File too large. Maximum size is {max_mb}MB."
UPLOAD_EMPTY = "No file uploaded"

UPLOAD_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}
