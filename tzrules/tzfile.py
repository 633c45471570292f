"""Library for loading time zone rules from TZif files and the environment.

A TZif file (see rfc8536) stores the historical transitions of a time zone
followed, since version 2, by a footer with a POSIX TZ string describing
the rules after the last transition. Only that footer is used here, the
historical transitions are skipped.

Zones are looked up the same way as zoneinfo: the tzdata python package is
preferred, with a fallback to the system TZPATH.
"""

from __future__ import annotations

import io
import logging
import os
import struct
import time
import zoneinfo
from dataclasses import dataclass
from functools import cache
from importlib import resources

from .exceptions import TimezoneInfoError
from .timezone import EMPTY, TimezoneInfo, parse_tz_string
from .tzinfo import TzInfo

__all__ = [
    "read_posix_footer",
    "read_tzif",
    "read_timezone",
    "read_tzinfo",
    "system_timezone",
    "set_system_timezone",
]

_LOGGER = logging.getLogger(__name__)

_TZ_ENV = "TZ"
_LOCALTIME = "/etc/localtime"
_V1_VERSION = b"\x00"
_V1_TIME_SIZE = 4
_V2_TIME_SIZE = 8
_LOCAL_TIME_RECORD_SIZE = 6
_LEAP_CORRECTION_SIZE = 4


@dataclass
class _Header:
    """TZif header information."""

    SIZE = 44  # Total size of the header to read
    STRUCT_FORMAT = "".join(
        [
            ">",  # Use standard size of packed value bytes
            "4s",  # magic (4 bytes)
            "c",  # version (1 byte)
            "15x",  # unused
            "6l",  # isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt
        ]
    )
    MAGIC = "TZif".encode()

    version: bytes
    """The version of the files format."""

    isutccnt: int
    """The number of UTC/local indicators in the data block."""

    isstdcnt: int
    """The number of standard/wall indicators in the data block."""

    leapcnt: int
    """The number of leap second records in the data block."""

    timecnt: int
    """The number of time transitions in the data block."""

    typecnt: int
    """The number of local time type records in the data block."""

    charcnt: int
    """The number of characters for time zone designations in the data block."""

    @classmethod
    def from_bytes(cls, header_bytes: bytes) -> _Header:
        """Parse the header bytes into a file."""
        if len(header_bytes) != _Header.SIZE:
            raise ValueError("zoneinfo file is truncated in the header")
        (
            magic,
            version,
            isutccnt,
            isstdcnt,
            leapcnt,
            timecnt,
            typecnt,
            charcnt,
        ) = struct.unpack(_Header.STRUCT_FORMAT, header_bytes)
        if magic != _Header.MAGIC:
            raise ValueError("zoneinfo file did not contain magic header")
        return _Header(version, isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt)

    def datablock_size(self, time_size: int) -> int:
        """Return the size of the data block following this header."""
        return (
            self.timecnt * time_size  # transition times
            + self.timecnt  # transition types
            + self.typecnt * _LOCAL_TIME_RECORD_SIZE
            + self.charcnt
            + self.leapcnt * (time_size + _LEAP_CORRECTION_SIZE)
            + self.isstdcnt
            + self.isutccnt
        )


def read_posix_footer(content: bytes) -> str:
    """Return the POSIX TZ string footer of TZif data, which may be empty."""
    buf = io.BytesIO(content)

    # V1 header and block
    header = _Header.from_bytes(buf.read(_Header.SIZE))
    if header.version == _V1_VERSION:
        raise ValueError("TZif version 1 data does not contain a footer")
    buf.seek(header.datablock_size(_V1_TIME_SIZE), io.SEEK_CUR)

    # V2+ header and block
    header = _Header.from_bytes(buf.read(_Header.SIZE))
    buf.seek(header.datablock_size(_V2_TIME_SIZE), io.SEEK_CUR)

    # V2+ footer
    parts = buf.read().decode("UTF-8").split("\n")
    if len(parts) != 3 or parts[0] or parts[2]:
        raise ValueError("Failed to read TZ footer")
    return parts[1]


def read_tzif(content: bytes, key: str = "") -> TimezoneInfo:
    """Read TZif data and return the time zone of its footer."""
    footer = read_posix_footer(content)
    if not footer:
        raise ValueError("TZif data has no rule for times after the last transition")
    _LOGGER.debug("Read TZ footer '%s' for '%s'", footer, key)
    return parse_tz_string(footer).model_copy(update={"key_name": key})


@cache
def _read_system_timezones() -> set[str]:
    """Read and cache the set of system and tzdata timezones."""
    return zoneinfo.available_timezones()


@cache
def _find_tzfile(key: str) -> str | None:
    """Retrieve the path to a TZif file from a key."""
    for search_path in zoneinfo.TZPATH:
        filepath = os.path.join(search_path, key)
        if os.path.isfile(filepath):
            return filepath

    return None


def _iana_key_to_resource(key: str) -> tuple[str, str]:
    """Returns the package and resource file for the specified timezone."""
    if "/" not in key:
        return "tzdata.zoneinfo", key
    package_loc, resource = key.rsplit("/", 1)
    package = "tzdata.zoneinfo." + package_loc.replace("/", ".")
    return package, resource


@cache
def read_timezone(key: str) -> TimezoneInfo:
    """Read the time zone rules for an IANA key such as Europe/Prague."""
    _LOGGER.debug("Reading timezone: %s", key)
    if key not in _read_system_timezones():
        raise TimezoneInfoError(f"Unable to find timezone in system timezones: {key}")

    # Prefer tzdata package
    (package, resource) = _iana_key_to_resource(key)
    try:
        with resources.files(package).joinpath(resource).open("rb") as tzdata_file:
            return read_tzif(tzdata_file.read(), key)
    except ModuleNotFoundError:
        _LOGGER.debug("tzdata package does not contain %s", key)
    except FileNotFoundError:
        _LOGGER.debug("tzdata package does not contain %s", key)
    except ValueError as err:
        raise TimezoneInfoError(f"Unable to load tzdata module: {key}") from err

    # Fallback to zoneinfo file on local disk
    tzfile = _find_tzfile(key)
    if tzfile is not None:
        with open(tzfile, "rb") as tzfile_file:
            try:
                return read_tzif(tzfile_file.read(), key)
            except ValueError as err:
                raise TimezoneInfoError(f"Unable to load tzdata file: {key}") from err

    raise TimezoneInfoError(f"Unable to find timezone data for {key}")


def read_tzinfo(key: str) -> TzInfo:
    """Create a tzinfo implementation for an IANA key."""
    return TzInfo(read_timezone(key))


def _read_tzif_path(path: str) -> TimezoneInfo:
    with open(path, "rb") as tzfile_file:
        try:
            return read_tzif(tzfile_file.read())
        except ValueError as err:
            raise TimezoneInfoError(f"Unable to load tzdata file: {path}") from err


def system_timezone() -> TimezoneInfo:
    """Return the time zone configured by the TZ environment variable.

    The variable is either a POSIX TZ string or a zone key prefixed with a
    colon, e.g. `:Europe/Prague`. When the variable is not set the system
    local time file is used, or UTC if there is none.
    """
    value = os.environ.get(_TZ_ENV)
    if not value:
        if os.path.isfile(_LOCALTIME):
            return _read_tzif_path(_LOCALTIME)
        return EMPTY
    if value.startswith(":"):
        key = value[1:]
        if os.path.isabs(key):
            return _read_tzif_path(key)
        return read_timezone(key)
    try:
        return parse_tz_string(value)
    except ValueError as err:
        if "/" in value:
            return read_timezone(value)
        raise TimezoneInfoError(f"Invalid TZ environment variable: {value}") from err


def set_system_timezone(info: TimezoneInfo) -> None:
    """Set the TZ environment variable for this process to the time zone."""
    value = info.to_posix()
    _LOGGER.debug("Setting TZ environment variable to '%s'", value)
    os.environ[_TZ_ENV] = value
    if hasattr(time, "tzset"):
        time.tzset()
