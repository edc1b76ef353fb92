"""HH:MM:SS time codes <-> whole seconds."""

import math


def _part_to_int(part: str) -> int:
    part = part.strip()
    if not part:
        return 0
    try:
        value = int(part)
    except ValueError:
        try:
            f = float(part)
        except ValueError:
            return 0
        if not math.isfinite(f):
            return 0
        value = math.floor(f)
    return max(0, value)


def parse(text: str | None) -> int:
    """Parse ``SS``, ``MM:SS`` or ``HH:MM:SS`` into seconds.

    Negative or non-numeric parts count as 0; anything past the third part is
    ignored.
    """
    if not text:
        return 0
    nums = [_part_to_int(p) for p in str(text).split(":")]
    if len(nums) == 1:
        return nums[0]
    if len(nums) == 2:
        return nums[0] * 60 + nums[1]
    return nums[0] * 3600 + nums[1] * 60 + nums[2]


def format(seconds: float | None) -> str:
    """Format seconds as zero-padded ``HH:MM:SS``, flooring fractions."""
    if seconds is None or not math.isfinite(seconds):
        seconds = 0
    s = max(0, math.floor(seconds))
    h = s // 3600
    m = (s % 3600) // 60
    return f"{h:02d}:{m:02d}:{s % 60:02d}"


def canonicalize(text: str | None) -> str:
    return format(parse(text))
