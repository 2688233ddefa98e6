"""Constants for the Checkly Operator."""

# API Group
API_GROUP = "k8s.checklyhq.com"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_ALERT_CHANNEL = "AlertChannel"
PLURAL_ALERT_CHANNELS = "alertchannels"

# Finalizers
DEFAULT_CONTROLLER_DOMAIN = API_GROUP
FINALIZER_SUFFIX = "finalizer"


def finalizer_for(domain: str) -> str:
    """Build the finalizer token owned by a controller deployment."""
    return f"{domain}/{FINALIZER_SUFFIX}"


# Field Manager
FIELD_MANAGER = "checkly-operator"
CONTROLLER_NAME = "checkly-operator"

# Checkly API
DEFAULT_CHECKLY_API_URL = "https://api.checklyhq.com"
ALERT_CHANNELS_PATH = "/v1/alert-channels"

# Alert channel types as understood by the Checkly API
CHANNEL_TYPE_EMAIL = "EMAIL"
CHANNEL_TYPE_OPSGENIE = "OPSGENIE"
CHANNEL_TYPE_WEBHOOK = "WEBHOOK"

# Event Reasons
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_FINALIZER_ADDED = "FinalizerAdded"
EVENT_REASON_FINALIZER_REMOVED = "FinalizerRemoved"
EVENT_REASON_CHANNEL_CREATED = "AlertChannelCreated"
EVENT_REASON_CHANNEL_UPDATED = "AlertChannelUpdated"
EVENT_REASON_CHANNEL_DELETED = "AlertChannelDeleted"
