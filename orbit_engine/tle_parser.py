"""
TLE Parser Module

Parses Two-Line Element (TLE) sets into validated element records and caches
the propagator-ready record for each catalog identity.

The cache key is the exact ``(identity, line1, line2)`` text: any change to
either line produces a new key, and the new record supersedes the old one for
that identity instead of merging with it.
"""

import logging
import math
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from orbit_engine.constants import DEG2RAD, MINUTES_PER_DAY, RAD2DEG, XPDOTP
from orbit_engine.exceptions import ParseError
from orbit_engine.models import CatalogEntry

logger = logging.getLogger(__name__)

TLE_LINE_LENGTH = 69
DEFAULT_CACHE_SIZE = 50_000

# Alpha-5 catalog number prefixes; I and O are skipped
_ALPHA5_LETTERS = "ABCDEFGHJKLMNPQRSTUVWXYZ"

_EXPONENTIAL_FIELD = re.compile(r"^([+-]?)\.?(\d+)([+-]?\d)$")


@dataclass(frozen=True)
class TLEElements:
    """
    Mean elements of one TLE, in SGP4 units.

    Angles are in radians, mean motion in rad/min, and its derivatives in
    rad/min^2 and rad/min^3. The epoch is kept as a split Julian date
    (``jdsatepoch`` ends in .5, ``jdsatepochF`` is the day fraction).
    """

    satnum: int
    classification: str
    intldesg: str
    epochyr: int
    epochdays: float
    jdsatepoch: float
    jdsatepochF: float
    ndot: float
    nddot: float
    bstar: float
    inclo: float
    nodeo: float
    ecco: float
    argpo: float
    mo: float
    no_kozai: float
    elnum: int
    revnum: int
    line1: str
    line2: str

    @property
    def epoch_year(self) -> int:
        return 2000 + self.epochyr if self.epochyr < 57 else 1900 + self.epochyr

    @property
    def epoch(self) -> datetime:
        """Epoch as a UTC datetime."""
        start = datetime(self.epoch_year, 1, 1, tzinfo=timezone.utc)
        return start + timedelta(days=self.epochdays - 1.0)

    @property
    def mean_motion_rev_per_day(self) -> float:
        return self.no_kozai * XPDOTP

    @property
    def period_minutes(self) -> float:
        return 2.0 * math.pi / self.no_kozai

    def as_dict(self) -> Dict[str, Any]:
        """Human-readable view with degrees and rev/day."""
        return {
            "norad_id": self.satnum,
            "classification": self.classification,
            "intl_designator": self.intldesg,
            "epoch_year": self.epochyr,
            "epoch_days": self.epochdays,
            "epoch_datetime": self.epoch,
            "ndot": self.ndot * XPDOTP * MINUTES_PER_DAY,
            "nddot": self.nddot * XPDOTP * MINUTES_PER_DAY * MINUTES_PER_DAY,
            "bstar_drag": self.bstar,
            "element_number": self.elnum,
            "inclination_deg": self.inclo * RAD2DEG,
            "raan_deg": self.nodeo * RAD2DEG,
            "eccentricity": self.ecco,
            "arg_perigee_deg": self.argpo * RAD2DEG,
            "mean_anomaly_deg": self.mo * RAD2DEG,
            "mean_motion_rev_per_day": self.mean_motion_rev_per_day,
            "revolution_number": self.revnum,
            "line1": self.line1,
            "line2": self.line2,
        }


@dataclass(frozen=True)
class OrbitalElementRecord:
    """Cached parse result: the elements plus the propagator's model."""

    identity: str
    key: Tuple[str, str, str]
    elements: TLEElements
    model: Any


def checksum(line: str) -> int:
    """Modulo-10 TLE checksum over the first 68 columns ('-' counts as 1)."""
    total = 0
    for char in line[:68]:
        if char.isdigit():
            total += int(char)
        elif char == "-":
            total += 1
    return total % 10


def with_checksum(line: str) -> str:
    """Return ``line`` padded to 68 columns with the correct checksum appended."""
    body = line[:68].ljust(68)
    return body + str(checksum(body))


def catalog_number(line1: str, line2: str) -> str:
    """
    Identifying catalog number of a TLE.

    Read from columns 3-7 of line 2, falling back to line 1 when line 2's
    field is not purely numeric.
    """
    number = line2[2:7].strip()
    if not number.isdigit():
        number = line1[2:7].strip()
    return number


def _decode_catalog_number(field: str) -> int:
    field = field.strip()
    if not field:
        raise ParseError("missing catalog number")
    if field[0].isalpha():
        index = _ALPHA5_LETTERS.find(field[0].upper())
        if index < 0 or not field[1:].isdigit():
            raise ParseError(f"invalid Alpha-5 catalog number {field!r}")
        return (index + 10) * 10000 + int(field[1:])
    if not field.isdigit():
        raise ParseError(f"invalid catalog number {field!r}")
    return int(field)


def _float_field(line: str, start: int, end: int, name: str, default: Optional[float] = None) -> float:
    text = line[start:end].strip()
    if not text:
        if default is None:
            raise ParseError(f"missing {name}")
        return default
    try:
        return float(text)
    except ValueError:
        raise ParseError(f"malformed {name} {text!r}")


def _int_field(line: str, start: int, end: int, default: int = 0) -> int:
    text = line[start:end].strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError:
        return default


def _exponential_field(line: str, start: int, end: int, name: str) -> float:
    """Parse the implied-decimal exponent notation, e.g. ' 28098-4' -> 0.28098e-4."""
    text = line[start:end].replace(" ", "")
    if not text:
        return 0.0
    match = _EXPONENTIAL_FIELD.match(text)
    if match is None:
        raise ParseError(f"malformed {name} {line[start:end]!r}")
    sign, mantissa, exponent = match.groups()
    value = float(f"0.{mantissa}") * 10.0 ** int(exponent)
    return -value if sign == "-" else value


def _check_line(line: Optional[str], number: str, verify_checksum: bool) -> str:
    if not line or not line.strip():
        raise ParseError(f"missing line {number}")
    line = line.rstrip()
    if line[0] != number or line[1:2] != " ":
        raise ParseError(f"line {number} does not start with '{number} '")
    minimum = TLE_LINE_LENGTH if verify_checksum else 64
    if len(line) < minimum:
        raise ParseError(f"line {number} too short ({len(line)} columns)")
    if verify_checksum:
        expected = checksum(line)
        if not line[68].isdigit() or int(line[68]) != expected:
            raise ParseError(
                f"checksum mismatch on line {number} (found {line[68]!r}, expected {expected})"
            )
    return line


def parse_tle(line1: str, line2: str, verify_checksum: bool = True) -> TLEElements:
    """
    Parse TLE lines into mean elements.

    Args:
        line1: First line of TLE
        line2: Second line of TLE
        verify_checksum: Reject lines whose column-69 checksum is wrong

    Returns:
        TLEElements in SGP4 units

    Raises:
        ParseError: on missing lines, malformed fields, checksum mismatch or
            physically invalid elements
    """
    line1 = _check_line(line1, "1", verify_checksum)
    line2 = _check_line(line2, "2", verify_checksum)

    satnum = _decode_catalog_number(line1[2:7])
    if _decode_catalog_number(line2[2:7]) != satnum:
        raise ParseError(
            f"catalog number mismatch ({line1[2:7].strip()} vs {line2[2:7].strip()})"
        )

    # Line 1
    classification = line1[7:8].strip() or "U"
    intldesg = line1[9:17].strip()
    epochyr = _int_field(line1, 18, 20, default=-1)
    if epochyr < 0:
        raise ParseError(f"malformed epoch year {line1[18:20]!r}")
    epochdays = _float_field(line1, 20, 32, "epoch day")
    if not 0.0 < epochdays < 367.0:
        raise ParseError(f"epoch day {epochdays} out of range")
    ndot = _float_field(line1, 33, 43, "first derivative of mean motion", default=0.0)
    nddot = _exponential_field(line1, 44, 52, "second derivative of mean motion")
    bstar = _exponential_field(line1, 53, 61, "B* drag term")
    elnum = _int_field(line1, 64, 68)

    # Line 2
    inclination = _float_field(line2, 8, 16, "inclination")
    raan = _float_field(line2, 17, 25, "right ascension of ascending node")
    ecc_digits = line2[26:33].replace(" ", "0")
    if not ecc_digits.isdigit():
        raise ParseError(f"malformed eccentricity {line2[26:33]!r}")
    ecco = float("0." + ecc_digits)
    arg_perigee = _float_field(line2, 34, 42, "argument of perigee")
    mean_anomaly = _float_field(line2, 43, 51, "mean anomaly")
    mean_motion = _float_field(line2, 52, 63, "mean motion")
    revnum = _int_field(line2, 63, 68)

    values = (ndot, nddot, bstar, inclination, raan, ecco, arg_perigee, mean_anomaly, mean_motion)
    if not all(math.isfinite(v) for v in values):
        raise ParseError("non-finite orbital element")
    if mean_motion <= 0.0:
        raise ParseError(f"mean motion must be positive (got {mean_motion})")
    if not 0.0 <= inclination <= 180.0:
        raise ParseError(f"inclination {inclination} out of range")

    year = 2000 + epochyr if epochyr < 57 else 1900 + epochyr
    whole_days = math.floor(epochdays)
    jdsatepoch = _julian_date_of_year_start(year) + whole_days
    jdsatepochF = epochdays - whole_days

    return TLEElements(
        satnum=satnum,
        classification=classification,
        intldesg=intldesg,
        epochyr=epochyr,
        epochdays=epochdays,
        jdsatepoch=jdsatepoch,
        jdsatepochF=jdsatepochF,
        ndot=ndot / (XPDOTP * MINUTES_PER_DAY),
        nddot=nddot / (XPDOTP * MINUTES_PER_DAY * MINUTES_PER_DAY),
        bstar=bstar,
        inclo=inclination * DEG2RAD,
        nodeo=raan * DEG2RAD,
        ecco=ecco,
        argpo=arg_perigee * DEG2RAD,
        mo=mean_anomaly * DEG2RAD,
        no_kozai=mean_motion / XPDOTP,
        elnum=elnum,
        revnum=revnum,
        line1=line1,
        line2=line2,
    )


def _julian_date_of_year_start(year: int) -> float:
    """Julian date of day 0 (December 31 of the previous year, 00:00 UT)."""
    return 367.0 * year - math.floor(7.0 * year * 0.25) + 30.0 + 1721013.5


class ElementCache:
    """
    Parsed-record cache keyed by catalog identity.

    A lookup hits only when the identity's record was built from the exact
    same line text. Records are kept in LRU order and the least recently used
    identity is evicted once ``max_entries`` is exceeded.
    """

    def __init__(
        self,
        initializer: Callable[[TLEElements], Any],
        max_entries: int = DEFAULT_CACHE_SIZE,
        verify_checksum: bool = True,
    ):
        """
        Args:
            initializer: Builds the propagator model for parsed elements
            max_entries: Maximum number of identities held
            verify_checksum: Passed through to ``parse_tle``
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._initializer = initializer
        self.max_entries = max_entries
        self.verify_checksum = verify_checksum
        self._records: "OrderedDict[str, OrbitalElementRecord]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.superseded = 0
        self.evicted = 0

    def get_or_parse(self, entry: CatalogEntry) -> OrbitalElementRecord:
        """
        Return the cached record for ``entry``, parsing it on a miss.

        Raises:
            ParseError: if the entry's lines cannot be parsed or initialized
        """
        key = (entry.identity, entry.line1, entry.line2)
        record = self._records.get(entry.identity)
        if record is not None and record.key == key:
            self._records.move_to_end(entry.identity)
            self.hits += 1
            return record

        self.misses += 1
        try:
            elements = parse_tle(entry.line1, entry.line2, self.verify_checksum)
        except ParseError as e:
            raise ParseError(e.reason, entry.identity) from e

        try:
            model = self._initializer(elements)
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            raise ParseError(f"element initialization failed: {e}", entry.identity) from e

        if record is not None:
            self.superseded += 1
            logger.debug(f"Superseding cached elements for {entry.identity}")

        new_record = OrbitalElementRecord(
            identity=entry.identity, key=key, elements=elements, model=model
        )
        self._records[entry.identity] = new_record
        self._records.move_to_end(entry.identity)

        while len(self._records) > self.max_entries:
            evicted_identity, _ = self._records.popitem(last=False)
            self.evicted += 1
            logger.debug(f"Evicted cached elements for {evicted_identity}")

        return new_record

    def get(self, identity: str) -> Optional[OrbitalElementRecord]:
        return self._records.get(identity)

    def clear(self) -> None:
        self._records.clear()

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "size": len(self._records),
            "hits": self.hits,
            "misses": self.misses,
            "superseded": self.superseded,
            "evicted": self.evicted,
        }

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records


def load_catalog(text: str, category: str = "") -> List[CatalogEntry]:
    """
    Build catalog entries from 2-line or 3-line TLE text.

    A name line preceding line 1 is optional (a leading ``0 `` marker, as in
    3LE files, is stripped). Groups that do not form a line 1/line 2 pair are
    skipped.

    Args:
        text: TLE file contents
        category: Category tag applied to every entry

    Returns:
        Entries in file order
    """
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    entries: List[CatalogEntry] = []
    name = ""
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("1 ") and i + 1 < len(lines) and lines[i + 1].startswith("2 "):
            line1, line2 = line, lines[i + 1]
            entries.append(
                CatalogEntry(
                    identity=catalog_number(line1, line2),
                    category=category,
                    line1=line1,
                    line2=line2,
                    name=name,
                )
            )
            name = ""
            i += 2
            continue
        if line.startswith("1 ") or line.startswith("2 "):
            logger.warning(f"Skipping unpaired TLE line: {line[:20]}...")
            name = ""
        else:
            name = line[2:].strip() if line.startswith("0 ") else line.strip()
        i += 1
    return entries
