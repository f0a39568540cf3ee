"""
QR code helpers

Check-in tokens are 32 random bytes, hex encoded. The QR image encodes a
check-in URL on the web client carrying the token.
"""
import io
import secrets
from datetime import datetime, timedelta
from typing import Optional

import qrcode
from qrcode.image.svg import SvgPathImage

from mentorboard import config


def generate_token() -> str:
    """New check-in token (64 hex characters)"""
    return secrets.token_hex(32)


def week_end_expiry(session_date: datetime) -> datetime:
    """
    End of the week containing session_date: the following Sunday (the same
    day when it already is Sunday) at 23:59:59.999.
    """
    days_until_sunday = (6 - session_date.weekday()) % 7
    sunday = session_date + timedelta(days=days_until_sunday)
    return sunday.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_token_valid(expires_at: Optional[datetime], now: datetime) -> bool:
    return expires_at is not None and expires_at >= now


def attendance_check_in_url(session_id, token: str) -> str:
    return f"{config.APP_BASE_URL}/attendance/check-in?session={session_id}&token={token}"


def event_check_in_url(event_id, token: str) -> str:
    return f"{config.APP_BASE_URL}/events/{event_id}/check-in?token={token}"


def render_svg(data: str) -> str:
    """Render data as an SVG QR code"""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(image_factory=SvgPathImage)
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue().decode("utf-8")
