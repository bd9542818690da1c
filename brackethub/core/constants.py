"""Global constants for the brackethub application."""

# Collection names
USERS_COLLECTION = "users"
USERNAMES_COLLECTION = "usernames"
TOURNAMENTS_COLLECTION = "tournaments"
TEAMS_COLLECTION = "teams"

# Tournament types
TYPE_DUEL = "1v1 Duel"
TYPE_TEAMS = "4v4 HvV"
TYPE_FREE_FOR_ALL = "Free-for-All"
TOURNAMENT_TYPES = (TYPE_DUEL, TYPE_TEAMS, TYPE_FREE_FOR_ALL)
TEAM_TOURNAMENT_TYPES = (TYPE_TEAMS,)

# Tournament lifecycle
STATUS_SETUP = "setup"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"

# Bracket
BYE_ID = "BYE"
MIN_PARTICIPANTS = 2

# Teams
MAX_TEAM_SIZE = 4
TEAM_COLORS = (
    "#e74c3c",
    "#3498db",
    "#2ecc71",
    "#f1c40f",
    "#9b59b6",
    "#e67e22",
    "#1abc9c",
    "#34495e",
)

# Users
MIN_USERNAME_LENGTH = 3
USER_SEARCH_LIMIT = 20

# Invites
INVITE_TOKEN_BYTES = 6
