"""Global constants for the arenasync application."""

# Storage-related constants
NAMESPACE_PREFIX = "firebase_db_"
DEFAULT_STORE_BACKEND = "sqlite"
DEFAULT_FIRESTORE_COLLECTION = "realtime"

# Path roots
TOURNAMENTS_ROOT = "tournaments"
CHATS_ROOT = "chats"

# Bracket-related constants
TBD = "TBD"
QUARTERFINAL_IDS = ("qf1", "qf2", "qf3", "qf4")
MATCH_IDS = ("qf1", "qf2", "qf3", "qf4", "semi1", "semi2", "final")
BRACKET_TREE = {
    "qf1": "semi1",
    "qf2": "semi1",
    "qf3": "semi2",
    "qf4": "semi2",
    "semi1": "final",
    "semi2": "final",
    "final": None,
}
# Matches feeding the player2 slot of their successor; all others feed player1
PLAYER2_FEEDERS = frozenset({"qf2", "qf4", "semi2"})
WINNER_SLOTS = ("player1", "player2")

# Leaderboard-related constants
AVATAR_URL_TEMPLATE = "https://i.pravatar.cc/150?u={name}"
LEADERBOARD_ENTRY_ID_TEMPLATE = "p_{index}"

# Chat-related constants
CHAT_ID_SEPARATOR = "_"
MESSAGE_ID_PREFIX = "msg_"
