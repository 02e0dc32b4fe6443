"""
Device descriptor parsing from a browser user agent.
"""

import uuid

from api.schemas.push import DeviceInfo, DevicePlatform

# Checked in order; Edge and Chrome both advertise "Chrome".
_BROWSERS = (
    ("Edg", "Edge"),
    ("Firefox", "Firefox"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
)

_OPERATING_SYSTEMS = (
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("iPod", "iOS"),
    ("Android", "Android"),
    ("Windows", "Windows"),
    ("Mac", "macOS"),
    ("Linux", "Linux"),
)


def parse_device_info(user_agent: str | None, device_id: str | None = None) -> DeviceInfo:
    """Describe the device behind a user agent string."""
    ua = user_agent or ""

    if any(token in ua for token in ("iPhone", "iPad", "iPod")):
        platform = DevicePlatform.IOS
    elif "Android" in ua:
        platform = DevicePlatform.ANDROID
    else:
        platform = DevicePlatform.WEB

    browser = next((name for token, name in _BROWSERS if token in ua), None)
    os_name = next((name for token, name in _OPERATING_SYSTEMS if token in ua), None)

    return DeviceInfo(
        platform=platform,
        browser=browser,
        os=os_name,
        device_id=device_id or str(uuid.uuid4()),
        user_agent=user_agent,
    )
