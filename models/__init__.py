from .connection import UserConnection
