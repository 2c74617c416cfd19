from enum import Enum


class Outcome(str, Enum):
    SUCCESS = "success"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    OTHER_ERROR = "other_error"
    HANG = "hang"
    OUTAGE = "outage"

