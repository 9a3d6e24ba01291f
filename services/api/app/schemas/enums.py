"""Closed vocabularies shared by the wire format and the database."""

from enum import Enum


class ActionType(str, Enum):
    """Interaction recorded within a tap's session."""

    CARD_VIEW = "card_view"
    SOCIAL_LINK_CLICK = "social_link_click"
    FEATURED_LINK_CLICK = "featured_link_click"
    BOOK_NOW_CLICK = "book_now_click"
    SAVE_CONTACT_CLICK = "save_contact_click"
    CONTACT_DOWNLOADED = "contact_downloaded"
    GALLERY_ITEM_CLICK = "gallery_item_click"
    BIO_EXPANDED = "bio_expanded"
    BIO_COLLAPSED = "bio_collapsed"


class GeoMethod(str, Enum):
    """How a tap's location was obtained."""

    BROWSER_GEOLOCATION = "browser_geolocation"
    IP_GEOLOCATION = "ip_geolocation"
    EVENT_LOCATION = "event_location"
    USER_LOCATION_DURING_EVENT = "user_location_during_event"
    UNKNOWN = "unknown"


class EventStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Dimension(str, Enum):
    """Breakdown axis for a single analytics query."""

    TIMELINE = "timeline"
    GEOGRAPHY = "geography"
    DEVICE = "device"
    ACTION = "action"
    GALLERY = "gallery"


# Actions that count as a conversion (contact saved or meeting requested)
CONVERSION_ACTIONS = frozenset({ActionType.SAVE_CONTACT_CLICK, ActionType.BOOK_NOW_CLICK})

# Methods set by event attribution
EVENT_GEO_METHODS = frozenset({GeoMethod.EVENT_LOCATION, GeoMethod.USER_LOCATION_DURING_EVENT})
