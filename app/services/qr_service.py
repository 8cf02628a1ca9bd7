from app.errors import InvalidArgument


def extract_user_id(decoded_text: str | None) -> str:
    """
    Customer QR codes carry either the bare uid or the profile URL
    (https://.../profile/<uid>). Query string, fragment and a trailing
    slash are ignored.
    """
    text = (decoded_text or "").strip()
    if "/profile/" in text:
        text = text.split("/profile/", 1)[1]

    user_id = text.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    if not user_id:
        raise InvalidArgument("Missing scannedUserId")
    return user_id
