# backend/unit_converter.py

"""
Unit Converter - Parsing & Conversion Engine

This engine is responsible for:
- Reading the numeric prefix of a raw query ("3/2km" -> 1.5)
- Reading the unit suffix of a raw query ("3/2km" -> km)
- Mapping a unit to its paired unit and display name
- Converting between paired units
- Rendering the result sentence

This engine MUST NOT:
- Support units outside L/gal, km/mi, kg/lbs
- Raise on bad user input (parse failures are returned as values)
- Round inside convert() (precision is applied by convert_input)

INVARIANTS:
1) paired_unit(paired_unit(u)) == u for every unit
2) Unit lookup is case-insensitive, output is always the canonical Unit
3) Number and unit parsing are independent; both may fail on one input
4) All tables are read-only after import
"""

import logging
import math
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# ==================== ENUMS ====================

class Unit(str, Enum):
    """Canonical units (value is the display symbol)"""
    LITER = "L"
    GALLON = "gal"
    KILOMETER = "km"
    MILE = "mi"
    KILOGRAM = "kg"
    POUND = "lbs"


class ConversionStatus(str, Enum):
    """Conversion result status"""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


# ==================== UNIT TABLES ====================

# Lowercased symbol -> canonical unit ("l" -> L)
UNIT_LOOKUP: Dict[str, Unit] = {unit.value.lower(): unit for unit in Unit}

UNIT_PAIRS: Dict[Unit, Unit] = {
    # Volume
    Unit.LITER: Unit.GALLON,
    Unit.GALLON: Unit.LITER,

    # Distance
    Unit.KILOMETER: Unit.MILE,
    Unit.MILE: Unit.KILOMETER,

    # Mass
    Unit.KILOGRAM: Unit.POUND,
    Unit.POUND: Unit.KILOGRAM,
}

UNIT_DISPLAY_NAMES: Dict[Unit, str] = {
    Unit.LITER: "liters",
    Unit.GALLON: "gallons",
    Unit.KILOMETER: "kilometers",
    Unit.MILE: "miles",
    Unit.KILOGRAM: "kilograms",
    Unit.POUND: "pounds",
}

# US unit -> multiplier into its metric pair. Metric -> US divides by the same rate.
CONVERSION_RATES: Dict[Unit, float] = {
    Unit.GALLON: 3.78541,
    Unit.POUND: 0.453592,
    Unit.MILE: 1.60934,
}

# ==================== PRECISION RULES ====================

RESULT_DECIMAL_PLACES = 5

# ==================== PARSING PATTERNS ====================

# Optional sign or digit or dot, then any run of digits, dots and slashes
NUMBER_TOKEN_RE = re.compile(r"^(-|\d|\.)[\d./]*", re.ASCII)
UNIT_SUFFIX_RE = re.compile(r"[a-z]+\Z")
WHITESPACE_RE = re.compile(r"\s+")

# ==================== ERROR CLASSES ====================

class ConversionError(Exception):
    """Base conversion error (programming errors only, never bad user input)"""
    def __init__(self, error_code: str, message: str, field: Optional[str] = None, severity: str = "HARD_ERROR"):
        self.error_code = error_code
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(self.message)


class UnknownUnitError(ConversionError):
    """Unit not recognized"""
    def __init__(self, unit: object, allowed_units: List[str]):
        super().__init__(
            "UNKNOWN_UNIT",
            f"Unit '{unit}' is not recognized. Allowed units: {', '.join(allowed_units)}",
            field="unit",
            severity="HARD_ERROR"
        )


# ==================== PARSE RESULTS ====================

class ParseError(BaseModel):
    """Tagged parse failure, returned instead of raised"""
    model_config = ConfigDict(frozen=True)

    error_code: str
    message: str
    field: str
    raw_input: Optional[str] = None


class NumberParseError(ParseError):
    error_code: Literal["INVALID_NUMBER"] = "INVALID_NUMBER"
    field: str = "initNum"


class UnitParseError(ParseError):
    error_code: Literal["INVALID_UNIT"] = "INVALID_UNIT"
    field: str = "initUnit"


NumberResult = Union[float, NumberParseError]
UnitResult = Union[Unit, UnitParseError]

# ==================== DATA MODELS ====================

class ConversionResult(BaseModel):
    """Engine output contract (camelCase on the wire)"""
    model_config = ConfigDict(populate_by_name=True)

    init_num: Optional[float] = Field(default=None, alias="initNum")
    init_unit: Optional[Unit] = Field(default=None, alias="initUnit")
    return_num: Optional[float] = Field(default=None, alias="returnNum")
    return_unit: Optional[Unit] = Field(default=None, alias="returnUnit")
    string: Optional[str] = None

    status: ConversionStatus
    errors: List[ParseError] = []

    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Wire fields returned by GET /api/convert on success
RESPONSE_FIELDS = {"init_num", "init_unit", "return_num", "return_unit", "string"}

# ==================== PRESENTATION HELPERS ====================

def apply_precision(value: float, decimal_places: int = RESULT_DECIMAL_PLACES) -> float:
    """
    Round value half-up to a fixed number of decimal places.

    Args:
        value: Raw converted value
        decimal_places: Digits kept after the decimal point

    Returns:
        Rounded float
    """
    decimal_value = Decimal(str(value))
    with localcontext() as ctx:
        # Large magnitudes need more significant digits than the default 28
        ctx.prec = max(ctx.prec, decimal_value.adjusted() + decimal_places + 2)
        rounded = decimal_value.quantize(Decimal(10) ** -decimal_places, rounding=ROUND_HALF_UP)
    return float(rounded)


def format_number(value: float) -> str:
    """
    Render a number the way the sentence shows it.

    1.5 -> "1.5", 2.0 -> "2", -0.0 -> "0", 5e-05 -> "0.00005".
    Exponent notation is only used outside 1e-7 <= |x| < 1e21 ("1e-8", "1e+21").
    """
    value = float(value)
    if value == 0:
        return "0"

    if 1e-7 <= abs(value) < 1e21:
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text

    return repr(value).replace("e-0", "e-").replace("e+0", "e+")


def error_message(errors: List[ParseError]) -> str:
    codes = {error.error_code for error in errors}
    bad_number = "INVALID_NUMBER" in codes
    bad_unit = "INVALID_UNIT" in codes

    if bad_number and bad_unit:
        return "invalid number and unit"
    if bad_number:
        return "invalid number"
    if bad_unit:
        return "invalid unit"
    return "unexpected error"


# ==================== UNIT CONVERTER ====================

class UnitConverter:
    """
    Stateless unit converter.

    Every method is a pure function of its arguments and the module tables,
    so one instance can be shared by any number of callers.
    """

    def __init__(self, decimal_places: int = RESULT_DECIMAL_PLACES):
        self.decimal_places = decimal_places
        self.version = "1.0.0"

    def normalize_unit(self, unit: Union[Unit, str]) -> Unit:
        """
        Resolve a Unit or unit symbol (any casing) to the canonical Unit.

        Raises:
            UnknownUnitError: If the value is not one of the six units
        """
        if isinstance(unit, Unit):
            return unit

        if isinstance(unit, str):
            normalized = UNIT_LOOKUP.get(unit.strip().lower())
            if normalized:
                return normalized

        raise UnknownUnitError(unit, [u.value for u in Unit])

    def parse_number(self, raw: Optional[str]) -> NumberResult:
        """
        Read the numeric prefix of the input.

        Accepts whole numbers, decimals and a single fraction ("-1.3/3").
        A missing number defaults to 1 when the input still ends in a known
        unit ("kg", "/2km"); otherwise ("abc", "   ") it is invalid.

        Args:
            raw: Raw query string

        Returns:
            float value, or NumberParseError
        """
        if not raw:
            return 1.0

        match = NUMBER_TOKEN_RE.match(raw)
        if match is None:
            remainder = WHITESPACE_RE.sub("", raw)
            # Only a recognized trailing unit earns the default multiplier
            suffix = UNIT_SUFFIX_RE.search(remainder.lower())
            if suffix is not None and suffix.group(0) in UNIT_LOOKUP:
                return 1.0
            reason = "no number before the unit" if remainder else "blank input"
            logger.debug(f"Rejected number in {raw!r}: {reason}")
            return NumberParseError(message=f"No valid number found ({reason}).", raw_input=raw)

        token = match.group(0)
        parts = token.split("/")
        if len(parts) > 2:
            logger.debug(f"Rejected number in {raw!r}: more than one '/'")
            return NumberParseError(message=f"Malformed fraction '{token}'.", raw_input=raw)

        numerator = parts[0]
        denominator = parts[1] if len(parts) == 2 else ""

        try:
            value = float(numerator) / float(denominator or "1")
        except ValueError:
            logger.debug(f"Rejected number in {raw!r}: '{token}' is not numeric")
            return NumberParseError(message=f"'{token}' is not a number.", raw_input=raw)
        except ZeroDivisionError:
            logger.debug(f"Rejected number in {raw!r}: division by zero")
            return NumberParseError(message=f"'{token}' divides by zero.", raw_input=raw)

        if not math.isfinite(value):
            logger.debug(f"Rejected number in {raw!r}: not finite")
            return NumberParseError(message=f"'{token}' is not a finite number.", raw_input=raw)

        return value

    def parse_unit(self, raw: Optional[str]) -> UnitResult:
        """
        Read the unit suffix of the input.

        The letters must run to the very end of the string, so "km " and
        "km\\n" are rejected.

        Args:
            raw: Raw query string

        Returns:
            Canonical Unit, or UnitParseError
        """
        if raw is None:
            return UnitParseError(message="No unit provided.")

        match = UNIT_SUFFIX_RE.search(raw.lower())
        if match is None:
            logger.debug(f"Rejected unit in {raw!r}: no trailing letters")
            return UnitParseError(message="No unit provided.", raw_input=raw)

        unit = UNIT_LOOKUP.get(match.group(0))
        if unit is None:
            logger.debug(f"Rejected unit in {raw!r}: '{match.group(0)}' is not supported")
            return UnitParseError(
                message=f"Unit '{match.group(0)}' is not supported. "
                        f"Allowed units: {', '.join(u.value for u in Unit)}",
                raw_input=raw
            )

        return unit

    def paired_unit(self, unit: Union[Unit, str]) -> Unit:
        return UNIT_PAIRS[self.normalize_unit(unit)]

    def display_name(self, unit: Union[Unit, str]) -> str:
        return UNIT_DISPLAY_NAMES[self.normalize_unit(unit)]

    def convert(self, value: float, from_unit: Union[Unit, str]) -> float:
        """
        Convert value from from_unit into its paired unit (no rounding).

        US units multiply by their rate; metric units divide by the rate of
        their US pair.
        """
        unit = self.normalize_unit(from_unit)

        if unit in CONVERSION_RATES:
            return value * CONVERSION_RATES[unit]
        return value / CONVERSION_RATES[UNIT_PAIRS[unit]]

    def spell_out(self, init_num: float, init_unit: Unit, return_num: float, return_unit: Unit) -> str:
        return (
            f"{format_number(init_num)} {self.display_name(init_unit)} converts to "
            f"{format_number(return_num)} {self.display_name(return_unit)}"
        )

    def convert_input(self, raw: Optional[str]) -> ConversionResult:
        """
        Parse, validate and convert a raw query such as "3/2km".

        Steps:
        1) Parse number and unit independently (both failures are reported)
        2) Convert into the paired unit
        3) Apply precision to the converted value
        4) Compose the sentence

        Args:
            raw: Raw query string

        Returns:
            ConversionResult (status ERROR carries every parse failure)
        """
        errors: List[ParseError] = []

        try:
            init_num = self.parse_number(raw)
            init_unit = self.parse_unit(raw)

            if isinstance(init_num, ParseError):
                errors.append(init_num)
                init_num = None
            if isinstance(init_unit, ParseError):
                errors.append(init_unit)
                init_unit = None

            if errors:
                return ConversionResult(
                    init_num=init_num,
                    init_unit=init_unit,
                    status=ConversionStatus.ERROR,
                    errors=errors
                )

            converted = self.convert(init_num, init_unit)
            if not math.isfinite(converted):
                logger.debug(f"Rejected number in {raw!r}: converted value out of range")
                return ConversionResult(
                    init_unit=init_unit,
                    status=ConversionStatus.ERROR,
                    errors=[NumberParseError(
                        message=f"'{format_number(init_num)}' {init_unit.value} is out of range once converted.",
                        raw_input=raw
                    )]
                )

            return_num = apply_precision(converted, self.decimal_places)
            return_unit = self.paired_unit(init_unit)

            return ConversionResult(
                init_num=init_num,
                init_unit=init_unit,
                return_num=return_num,
                return_unit=return_unit,
                string=self.spell_out(init_num, init_unit, return_num, return_unit),
                status=ConversionStatus.SUCCESS
            )

        except Exception as e:
            logger.error(f"Unexpected error in unit conversion: {e}", exc_info=True)
            errors.append(ParseError(
                error_code="UNEXPECTED_ERROR",
                message=f"Unexpected error: {str(e)}",
                field="input",
                raw_input=raw
            ))
            return ConversionResult(
                status=ConversionStatus.ERROR,
                errors=errors
            )
