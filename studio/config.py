# studio/config.py

# Collections (worksheet tabs / table names)
PROFILES = "profiles"
CLASSES = "classes"
CLASS_SESSIONS = "class_sessions"
CLASS_ENROLLMENTS = "class_enrollments"
CLASS_PACKAGE_PURCHASES = "class_package_purchases"
DROP_IN_CREDIT_PURCHASES = "drop_in_credit_purchases"
CHECK_INS = "check_ins"
INSTRUCTOR_PAYMENT_BATCHES = "instructor_payment_batches"
INSTRUCTOR_PAYMENT_CONFIG = "instructor_payment_config"

HEADERS = {
    PROFILES: ["id", "name", "email", "phone", "role", "created_at"],
    CLASSES: [
        "id",
        "name",
        "description",
        "instructor_id",
        "schedule_days",          # JSON list[str], e.g. ["monday", "wednesday"]
        "schedule_time",          # HH:MM
        "duration_minutes",
        "instructor_payment_type",   # flat / percentage
        "instructor_payment_value",
        "created_at",
    ],
    CLASS_SESSIONS: [
        "id",
        "class_id",
        "session_date",           # YYYY-MM-DD
        "session_time",           # HH:MM:SS
        "created_from",           # enrollment / dropin / manual
        "created_at",
    ],
    CLASS_ENROLLMENTS: [
        "id",
        "user_id",
        "class_session_id",
        "package_purchase_id",
        "enrolled_at",
        "checked_in",
        "paid_out_at",
    ],
    CLASS_PACKAGE_PURCHASES: [
        "id",
        "user_id",
        "package_id",
        "package_name",
        "num_classes",
        "amount_paid",
        "purchase_date",
        "assigned_by",
        "notes",
    ],
    DROP_IN_CREDIT_PURCHASES: [
        "id",
        "user_id",
        "package_id",
        "package_name",
        "credits_total",
        "credits_remaining",
        "amount_paid",
        "purchase_date",
        "assigned_by",
        "payment_type",
        "payment_value",
        "notes",
    ],
    CHECK_INS: [
        "id",
        "class_id",
        "user_id",
        "class_session_id",
        "enrollment_id",
        "credit_purchase_id",
        "payment_method",         # package / credit
        "payment_status",         # pending / processed / paid
        "instructor_payment_amount",
        "checked_in_at",
        "is_temporary_user",
        "guest_name",
        "paid_out_at",
    ],
    INSTRUCTOR_PAYMENT_BATCHES: [
        "id",
        "instructor_id",
        "week_start",
        "week_end",
        "total_amount",
        "status",                 # pending / approved / paid
        "item_ids",               # JSON list[str]
        "created_at",
        "approved_at",
        "approved_by",
        "paid_at",
        "notes",
    ],
    INSTRUCTOR_PAYMENT_CONFIG: [
        "id",
        "instructor_id",
        "payment_day_of_week",    # 0 = Sunday ... 6 = Saturday
        "custom_notes",
        "updated_at",
    ],
}

# Columns enforced unique by every store
UNIQUE_KEYS = {
    CLASS_SESSIONS: ("class_id", "session_date", "session_time"),
    INSTRUCTOR_PAYMENT_CONFIG: ("instructor_id",),
}

JSON_COLUMNS = {"schedule_days", "item_ids"}
BOOL_COLUMNS = {"checked_in", "is_temporary_user"}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DEFAULT_SESSION_TIME = "18:00"
DEFAULT_INSTRUCTOR_PERCENTAGE = 70
DEFAULT_PAYMENT_DAY_OF_WEEK = 5   # Friday
RESCHEDULE_NOTICE_HOURS = 24
UPCOMING_SESSIONS_LIMIT = 10
