# File: const.py
"""Constants for the HydraCat notifications integration.

This file centralizes configuration keys, defaults, storage keys, notification
channels, payload fields, reason codes and service names so the coordinator,
the stores and the services all speak the same vocabulary.
"""

import logging
from datetime import timedelta

# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
# Integration Name
HYDRACAT_TITLE = "HydraCat"

# Integration Domain
DOMAIN = "hydracat"

# Logger
LOGGER = logging.getLogger(__package__)

# hass.data keys
COORDINATOR = "coordinator"
INDEX_STORE = "index_store"
SCHEDULE_CACHE = "schedule_cache"
GATEWAY = "gateway"

# Storage and Versioning
STORAGE_VERSION = 1
STORAGE_KEY_INDEX = "hydracat_notification_index"
STORAGE_KEY_SCHEDULES = "hydracat_schedules"

# ------------------------------------------------------------------------------------------------
# Configuration Keys (config entry data / options)
# ------------------------------------------------------------------------------------------------
CONF_USER_ID = "user_id"
CONF_PET_ID = "pet_id"
CONF_PET_NAME = "pet_name"
CONF_NOTIFY_SERVICE = "notify_service"
CONF_LANGUAGE = "language"
CONF_ENABLE_NOTIFICATIONS = "enable_notifications"
CONF_WEEKLY_SUMMARY_ENABLED = "weekly_summary_enabled"

DEFAULT_LANGUAGE = "en"
DEFAULT_PET_NAME = "your pet"
DEFAULT_ENABLE_NOTIFICATIONS = True
DEFAULT_WEEKLY_SUMMARY_ENABLED = True

# ------------------------------------------------------------------------------------------------
# Scheduling Rules
# ------------------------------------------------------------------------------------------------
SCHEDULING_WINDOW_DAYS = 3
GRACE_PERIOD = timedelta(minutes=30)
IMMEDIATE_FIRE_DELAY = timedelta(seconds=1)
FOLLOWUP_OFFSET = timedelta(hours=2)

WEEKLY_SUMMARY_HOUR = 9
WEEKLY_SUMMARY_CANCEL_SWEEP_WEEKS = 4

# Midnight rollover listener (a few seconds past midnight so "today" has changed)
MIDNIGHT_ROLLOVER_HOUR = 0
MIDNIGHT_ROLLOVER_MINUTE = 0
MIDNIGHT_ROLLOVER_SECOND = 5

# ------------------------------------------------------------------------------------------------
# Treatment / Notification Enumerations (string values)
# ------------------------------------------------------------------------------------------------
TREATMENT_TYPE_MEDICATION = "medication"
TREATMENT_TYPE_FLUID = "fluid"

NOTIFICATION_KIND_INITIAL = "initial"
NOTIFICATION_KIND_FOLLOWUP = "followup"

FREQUENCY_ONCE_DAILY = "onceDaily"
FREQUENCY_TWICE_DAILY = "twiceDaily"
FREQUENCY_THRICE_DAILY = "thriceDaily"
FREQUENCY_EVERY_OTHER_DAY = "everyOtherDay"
FREQUENCY_EVERY_3_DAYS = "every3Days"

# ------------------------------------------------------------------------------------------------
# Notification Channels
# ------------------------------------------------------------------------------------------------
CHANNEL_MEDICATION_REMINDERS = "medication_reminders"
CHANNEL_FLUID_REMINDERS = "fluid_reminders"
CHANNEL_WEEKLY_SUMMARIES = "weekly_summaries"

GROUP_ID_PREFIX = "pet_"

# ------------------------------------------------------------------------------------------------
# Notification Payload
# ------------------------------------------------------------------------------------------------
PAYLOAD_TYPE = "type"
PAYLOAD_USER_ID = "userId"
PAYLOAD_PET_ID = "petId"
PAYLOAD_SCHEDULE_IDS = "scheduleIds"
PAYLOAD_TIME_SLOT = "timeSlot"
PAYLOAD_KIND = "kind"
PAYLOAD_TREATMENT_TYPES = "treatmentTypes"
PAYLOAD_SCHEDULED_FOR = "scheduledFor"
PAYLOAD_DATE = "date"
PAYLOAD_ROUTE = "route"

PAYLOAD_TYPE_TREATMENT_REMINDER = "treatment_reminder"
PAYLOAD_TYPE_WEEKLY_SUMMARY = "weekly_summary"
WEEKLY_SUMMARY_ROUTE = "/progress"

# ------------------------------------------------------------------------------------------------
# Index Store
# ------------------------------------------------------------------------------------------------
INDEX_KEY_PREFIX = "notif_index_v2_"
INDEX_CHECKSUM = "checksum"
INDEX_ENTRIES = "entries"

# Index reconciliation report keys
RECONCILE_ADDED = "added"
RECONCILE_REMOVED = "removed"

ENTRY_NOTIFICATION_ID = "notificationId"
ENTRY_SCHEDULE_ID = "scheduleId"
ENTRY_TREATMENT_TYPE = "treatmentType"
ENTRY_TIME_SLOT = "timeSlotISO"
ENTRY_KIND = "kind"

# ------------------------------------------------------------------------------------------------
# Schedule Store Fields
# ------------------------------------------------------------------------------------------------
DATA_SCHEDULES = "schedules"
SCHEDULE_ID = "id"
SCHEDULE_NAME = "name"
SCHEDULE_TREATMENT_TYPE = "treatment_type"
SCHEDULE_FREQUENCY = "frequency"
SCHEDULE_REMINDER_TIMES = "reminder_times"
SCHEDULE_IS_ACTIVE = "is_active"
SCHEDULE_CREATED_AT = "created_at"

# ------------------------------------------------------------------------------------------------
# Result Reason Codes
# ------------------------------------------------------------------------------------------------
REASON_NO_USER_OR_PET = "no_user_or_pet"
REASON_DISABLED_IN_SETTINGS = "disabled_in_settings"
REASON_ALREADY_SCHEDULED = "already_scheduled"
REASON_SCHEDULING_FAILED = "scheduling_failed"
REASON_SCHEDULE_NOT_FOUND = "schedule_not_found"
REASON_SCHEDULE_INACTIVE = "schedule_inactive"

# ------------------------------------------------------------------------------------------------
# Localization
# ------------------------------------------------------------------------------------------------
CUSTOM_TRANSLATIONS_DIR = "translations_custom"
NOTIFICATION_TRANSLATIONS_SUFFIX = "_notifications"

TRANS_KEY_SINGLE_MEDICATION = "single_medication"
TRANS_KEY_SINGLE_FLUID = "single_fluid"
TRANS_KEY_SINGLE_FOLLOWUP = "single_followup"
TRANS_KEY_MULTI_INITIAL = "multi_initial"
TRANS_KEY_MULTI_INITIAL_MIXED = "multi_initial_mixed"
TRANS_KEY_MULTI_FOLLOWUP = "multi_followup"
TRANS_KEY_WEEKLY_SUMMARY = "weekly_summary"
TRANS_KEY_GROUP_SUMMARY = "group_summary"

TRANS_FIELD_TITLE = "title"
TRANS_FIELD_MESSAGE = "message"

# ------------------------------------------------------------------------------------------------
# Notify Service Payload
# ------------------------------------------------------------------------------------------------
NOTIFY_DOMAIN = "notify"
NOTIFY_TITLE = "title"
NOTIFY_MESSAGE = "message"
NOTIFY_DATA = "data"
NOTIFY_TAG = "tag"
NOTIFY_GROUP = "group"
NOTIFY_CHANNEL = "channel"
NOTIFY_PAYLOAD = "payload"
NOTIFY_CLEAR_NOTIFICATION = "clear_notification"
DISPLAY_DOT = "."

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_SCHEDULE_ALL = "schedule_all"
SERVICE_REFRESH_ALL = "refresh_all"
SERVICE_RESCHEDULE_ALL = "reschedule_all"
SERVICE_SCHEDULE_FOR_SCHEDULE = "schedule_for_schedule"
SERVICE_CANCEL_FOR_SCHEDULE = "cancel_for_schedule"
SERVICE_CANCEL_SLOT = "cancel_slot"
SERVICE_CANCEL_ALL_FOR_TODAY = "cancel_all_for_today"
SERVICE_SCHEDULE_WEEKLY_SUMMARY = "schedule_weekly_summary"
SERVICE_CANCEL_WEEKLY_SUMMARY = "cancel_weekly_summary"
SERVICE_UPSERT_SCHEDULE = "upsert_schedule"
SERVICE_REMOVE_SCHEDULE = "remove_schedule"
SERVICE_CLEAR_ALL_DATA = "clear_all_data"

FIELD_SCHEDULE_ID = "schedule_id"
FIELD_SCHEDULE_NAME = "name"
FIELD_TREATMENT_TYPE = "treatment_type"
FIELD_FREQUENCY = "frequency"
FIELD_REMINDER_TIMES = "reminder_times"
FIELD_IS_ACTIVE = "is_active"
FIELD_CREATED_AT = "created_at"
FIELD_TIME_SLOT = "time_slot"

# ------------------------------------------------------------------------------------------------
# Error Messages
# ------------------------------------------------------------------------------------------------
MSG_NO_ENTRY_FOUND = "No HydraCat entry found"
ERROR_SCHEDULE_NOT_FOUND_FMT = "Schedule '{}' not found"
ERROR_INVALID_TIME_SLOT_FMT = "Invalid time slot '{}' (expected HH:mm)"
ERROR_INVALID_SCHEDULE_FMT = "Invalid schedule definition: {}"
ERROR_SCHEDULING_SLOT_FMT = "Failed to schedule {} notification for {} {}: {}"
ERROR_CANCEL_FMT = "Failed to cancel notification {}: {}"

# Config flow
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
CFOP_ERROR_USER_ID = "invalid_user_id"
CFOP_ERROR_PET_ID = "invalid_pet_id"
CFOP_ERROR_NOTIFY_SERVICE = "invalid_notify_service"
