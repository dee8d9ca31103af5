"""Global constants for the kickabout application."""

# Collection names
USERS_COLLECTION = "users"
GROUPS_COLLECTION = "groups"
MEETUPS_COLLECTION = "meetups"
GAMES_COLLECTION = "games"

# Meetup field limits
MEETUP_TITLE_MAX_LENGTH = 200
MEETUP_DESCRIPTION_MAX_LENGTH = 1000
MEETUP_MIN_CAPACITY = 2
MEETUP_MIN_DURATION = 30
MEETUP_MAX_DURATION = 480

# Group field limits
GROUP_NAME_MAX_LENGTH = 100
GROUP_DESCRIPTION_MAX_LENGTH = 500
GROUP_RULES_MAX_LENGTH = 1000
GROUP_PRIVACY_CHOICES = ("public", "private", "invite-only")

# Game constants
GAME_FORMATS = ("5v5", "7v7", "11v11", "Other")
GAME_EVENT_TYPES = ("goal", "assist", "yellow_card", "red_card", "substitution")

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
