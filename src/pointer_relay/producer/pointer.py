"""
Pointer sources for the producer.

Every source reports positions in pixels with the origin at the bottom-left
of its screen, together with that screen's size.
"""

from __future__ import annotations

import glob
import logging
import math
import os
import select
import struct
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class PointerSource(Protocol):
    def position(self) -> tuple[float, float]: ...

    def screen_size(self) -> tuple[int, int]: ...


class ScriptedPointer:
    """Replays a fixed list of positions, then holds the last one."""

    def __init__(self, positions: Iterable[tuple[float, float]], screen: tuple[int, int] = (1920, 1080)) -> None:
        self._positions = [(float(x), float(y)) for x, y in positions]
        if not self._positions:
            raise ValueError("ScriptedPointer needs at least one position")
        self._i = 0
        self._screen = screen

    def position(self) -> tuple[float, float]:
        pos = self._positions[min(self._i, len(self._positions) - 1)]
        self._i += 1
        return pos

    def screen_size(self) -> tuple[int, int]:
        return self._screen


class OrbitPointer:
    """Synthetic pointer going round a circle in the middle of the screen."""

    def __init__(
        self,
        screen: tuple[int, int] = (1920, 1080),
        *,
        radius_frac: float = 0.3,
        period_s: float = 4.0,
        clock=time.monotonic,
    ) -> None:
        self._screen = screen
        self._radius = radius_frac * min(screen)
        self._omega = 2 * math.pi / period_s
        self._clock = clock
        self._t0 = clock()

    def position(self) -> tuple[float, float]:
        a = self._omega * (self._clock() - self._t0)
        w, h = self._screen
        return (w / 2 + self._radius * math.cos(a), h / 2 + self._radius * math.sin(a))

    def screen_size(self) -> tuple[int, int]:
        return self._screen


# Linux input constants (subset)
EV_ABS = 0x03
ABS_X = 0x00
ABS_Y = 0x01

# struct input_event { struct timeval time; __u16 type; __u16 code; __s32 value; }
# native "l" matches the kernel's long on both 32- and 64-bit builds.
EVENT_FMT = "llHHi"
EVENT_SIZE = struct.calcsize(EVENT_FMT)


@dataclass
class AbsRange:
    x_min: int
    x_max: int
    y_min: int
    y_max: int


def _ioctl_ior(type_char: str, nr: int, size: int) -> int:
    # _IOR: dir=2 (read) << 30 | size << 16 | type << 8 | nr
    return (2 << 30) | (size << 16) | (ord(type_char) << 8) | nr


def _evio_cgabs(abs_code: int) -> int:
    # EVIOCGABS(abs) = _IOR('E', 0x40 + abs, struct input_absinfo)
    # struct input_absinfo: value, min, max, fuzz, flat, resolution (6 ints)
    return _ioctl_ior("E", 0x40 + abs_code, struct.calcsize("6i"))


def read_abs_range(fd: int) -> AbsRange:
    import fcntl

    def read_abs(code: int) -> tuple[int, int]:
        buf = bytearray(struct.calcsize("6i"))
        fcntl.ioctl(fd, _evio_cgabs(code), buf, True)
        _value, mn, mx, _fuzz, _flat, _res = struct.unpack("6i", buf)
        return int(mn), int(mx)

    x_min, x_max = read_abs(ABS_X)
    y_min, y_max = read_abs(ABS_Y)
    return AbsRange(x_min, x_max, y_min, y_max)


def pick_input_device_path(devices_text: str | None = None) -> str:
    """
    Best-effort choice of an absolute-pointer event device.

    Parses /proc/bus/input/devices and prefers handlers that report absolute
    axes and look like a tablet, pen or touchscreen; otherwise falls back to
    the first /dev/input/event*.
    """
    if devices_text is None:
        try:
            with open("/proc/bus/input/devices", encoding="utf-8", errors="replace") as f:
                devices_text = f.read()
        except OSError:
            devices_text = ""

    best: tuple[int, str] | None = None
    for block in devices_text.split("\n\n"):
        name = ""
        handlers: list[str] = []
        has_abs = False
        for line in block.splitlines():
            if line.startswith("N: Name="):
                name = line.split("=", 1)[1].strip().strip('"').lower()
            elif line.startswith("H: Handlers="):
                handlers = line.split("=", 1)[1].strip().split()
            elif line.startswith("B: ABS="):
                has_abs = line.split("=", 1)[1].strip() not in ("", "0")
        event = next((h for h in handlers if h.startswith("event")), None)
        if not event or not has_abs:
            continue
        score = 1
        if any(k in name for k in ("stylus", "pen", "wacom", "tablet")):
            score += 10
        if "touch" in name:
            score += 5
        path = f"/dev/input/{event}"
        if best is None or score > best[0]:
            best = (score, path)
    if best is not None:
        return best[1]

    candidates = sorted(glob.glob("/dev/input/event*"))
    if not candidates:
        raise RuntimeError("No /dev/input/event* devices found.")
    return candidates[0]


class EvdevPointer:
    """
    Absolute pointer read straight from a Linux event device (no evdev dependency).

    A daemon thread decodes input events and publishes the latest X/Y; the
    sampler reads them from the event loop. Attribute writes are atomic, so no
    lock is needed for a pair of ints that is allowed to be one event stale.
    """

    def __init__(self, path: str | None = None, abs_range: AbsRange | None = None) -> None:
        self.path = path or pick_input_device_path()
        if abs_range is None:
            fd = os.open(self.path, os.O_RDONLY)
            try:
                abs_range = read_abs_range(fd)
            finally:
                os.close(fd)
        self.range = abs_range
        self._x_raw = (self.range.x_min + self.range.x_max) // 2
        self._y_raw = (self.range.y_min + self.range.y_max) // 2
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> "EvdevPointer":
        if self._thread is None:
            self._thread = threading.Thread(target=self._read_loop, name="evdev-pointer", daemon=True)
            self._thread.start()
            logger.info("Reading pointer from %s (range %s)", self.path, self.range)
        return self

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def feed(self, etype: int, ecode: int, evalue: int) -> None:
        if etype != EV_ABS:
            return
        if ecode == ABS_X:
            self._x_raw = int(evalue)
        elif ecode == ABS_Y:
            self._y_raw = int(evalue)

    def position(self) -> tuple[float, float]:
        r = self.range
        # device origin is top-left
        return (float(self._x_raw - r.x_min), float(r.y_max - self._y_raw))

    def screen_size(self) -> tuple[int, int]:
        r = self.range
        return (max(1, r.x_max - r.x_min), max(1, r.y_max - r.y_min))

    def _read_loop(self) -> None:
        fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        buf = b""
        try:
            while not self._stop.is_set():
                ready, _, _ = select.select([fd], [], [], 0.1)
                if not ready:
                    continue
                try:
                    chunk = os.read(fd, EVENT_SIZE * 64)
                except BlockingIOError:
                    continue
                if not chunk:
                    break
                buf += chunk
                while len(buf) >= EVENT_SIZE:
                    pkt, buf = buf[:EVENT_SIZE], buf[EVENT_SIZE:]
                    _sec, _usec, etype, ecode, evalue = struct.unpack(EVENT_FMT, pkt)
                    self.feed(etype, ecode, evalue)
        except OSError as e:
            logger.warning("Input device %s failed: %r", self.path, e)
        finally:
            os.close(fd)
