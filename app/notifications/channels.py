from enum import Enum


class Channel(str, Enum):
    PUSH_USER = "push_user"
    INAPP_ADMIN = "inapp_admin"
