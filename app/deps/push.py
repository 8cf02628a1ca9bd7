from app.errors import InvalidState
from app.services.push_sender import sender_from_env


def get_push_sender():
    sender = sender_from_env()
    if sender is None:
        raise InvalidState("Push delivery is not configured")
    try:
        yield sender
    finally:
        sender.close()
