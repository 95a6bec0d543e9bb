"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARLY_CHECKIN_QUEUE_NAME = "early-checkin-auth"
EARLY_CHECKIN_PURPOSE = "early_check_in"
EARLY_CHECKIN_DELAY_SECONDS = 60

DEFAULT_RETRY_LIMIT = 3
DEFAULT_RETRY_DELAY_SECONDS = 30
DEFAULT_POLL_INTERVAL_SECONDS = 1
DEFAULT_BATCH_SIZE = 1
DEFAULT_JOB_EXPIRE_SECONDS = 15 * 60

HR_ROLE_NAME = "human resources"
MANAGEMENT_ROLE_NAME = "management"

SCHEDULE_LINK_URL = "/account/schedule"

# Fields of the ERP planning-slot payload whose changes are logged on the shift.
TRACKED_SHIFT_FIELDS = (
    "start_datetime",
    "end_datetime",
    "x_role_name",
    "x_role_color",
    "x_employee_contact_name",
    "x_employee_avatar",
    "x_website_id",
)

ERP_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
