ALLOWED_TRANSITIONS = {
    "pending": ["preparing", "cancelled"],
    "preparing": ["ready", "cancelled"],
    "ready": ["delivered", "cancelled"],
    "delivered": [],
    "cancelled": []
}

TERMINAL_STATUSES = {"delivered", "cancelled"}
