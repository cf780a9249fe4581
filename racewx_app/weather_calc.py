#!/usr/bin/env python3
"""
Racing weather calculations

Turns three raw station readings (dry-bulb temperature, relative humidity and
absolute pressure) into the numbers racers tune on: vapor pressure, dew point,
humidity grains, air density ratio (ADR), density altitude and the standard
correction factor.

Everything in here is a pure function of its arguments. Nothing is validated
or clamped: degenerate inputs come back as NaN/inf. Use validate_inputs() when
a caller wants to fail fast instead.
"""
import math
from typing import Callable, NamedTuple, Tuple

from pydantic import BaseModel, ConfigDict

# Saturation vapor pressure curve fit (inHg), calibrated against the tuning sheet
PD_COEFFS = (0.000002923426, -0.0002235652, 0.01366344, -0.126149)

# Dew point inversion bracket (F) and fixed bisection count
DEW_POINT_BRACKET = (-60.0, 140.0)
DEW_POINT_ITERATIONS = 80

# Psychrometrics
MIXING_RATIO_COEFF = 0.62199  # Mw / Mda
GRAINS_PER_POUND = 7000

# Standard reference atmosphere for ADR
P_STD = 29.92  # inHg
T_STD_F = 60

# ICAO standard atmosphere
T0_K = 288.15
LAPSE_RATE = 0.0065  # K/m
GRAVITY = 9.80665  # m/s^2
R_AIR = 287.058  # J/(kg K)
FEET_PER_METER = 3.28084

# Standard correction factor
RANKINE_OFFSET = 459.7
RANKINE_STD = 519.7
TEMP_FACTOR_EXP = 0.50317


class DensityAltitudeCalibration(NamedTuple):
    """Affine fit applied on top of the ICAO density altitude (ft)"""
    a: float
    b: float


DA_CALIBRATION = DensityAltitudeCalibration(a=0.9877786024779986, b=15.819058349071335)


class InvalidInputsError(ValueError):
    """Raised by validate_inputs() for readings the derivations cannot handle"""


class Inputs(BaseModel):
    model_config = ConfigDict(frozen=True)

    temp_f: float
    humidity_pct: float
    abs_pressure_inhg: float


class RawOutput(BaseModel):
    """Every intermediate and final value of one computation"""
    model_config = ConfigDict(frozen=True)

    temp_f: float
    humidity_pct: float
    abs_pressure_inhg: float

    pd_value: float
    vapor_pressure_inhg: float

    dew_point_f: float
    humidity_grains: float

    adr_pct: float
    density_alt_ft: float

    tf: float
    hf: float
    bf: float
    correction: float


def pd_value_inhg(temp_f: float) -> float:
    """Saturation vapor pressure (inHg) from the cubic curve fit"""
    c3, c2, c1, c0 = PD_COEFFS
    return c3 * _ieee_pow(temp_f, 3) + c2 * _ieee_pow(temp_f, 2) + c1 * temp_f + c0


def vapor_pressure_inhg(temp_f: float, humidity_pct: float) -> float:
    return pd_value_inhg(temp_f) * (humidity_pct / 100)


def bisect_inverse(func: Callable[[float], float], target: float,
                   lo: float, hi: float, iterations: int) -> float:
    """
    Invert a non-decreasing function by bisection over [lo, hi].

    Runs exactly `iterations` halvings and returns the midpoint of the final
    bracket. Targets outside [func(lo), func(hi)] converge to the nearest edge.
    """
    for _ in range(iterations):
        mid = (lo + hi) / 2
        if func(mid) > target:
            hi = mid
        else:
            lo = mid
    return (lo + hi) / 2


def dew_point_f_from_vapor_pressure(e_inhg: float) -> float:
    """Temperature (F) at which pd_value_inhg() equals the given vapor pressure"""
    lo, hi = DEW_POINT_BRACKET
    return bisect_inverse(pd_value_inhg, e_inhg, lo, hi, DEW_POINT_ITERATIONS)


def humidity_grains(p_inhg: float, e_inhg: float) -> float:
    """Grains of water per pound of dry air"""
    w = MIXING_RATIO_COEFF * _ieee_div(e_inhg, p_inhg - e_inhg)
    return GRAINS_PER_POUND * w


def f_to_k(f: float) -> float:
    return (f - 32) * (5 / 9) + 273.15


def adr_percent(temp_f: float, p_inhg: float, e_inhg: float) -> float:
    """
    Air density ratio as a percentage of the standard atmosphere.

    Dry-air partial pressure over absolute temperature is used as the density
    proxy, against 29.92 inHg at 60F.
    """
    t = f_to_k(temp_f)
    t_std = f_to_k(T_STD_F)
    return _ieee_div(p_inhg - e_inhg, t) / (P_STD / t_std) * 100


def density_altitude_ft(adr_pct: float,
                        calibration: DensityAltitudeCalibration = DA_CALIBRATION) -> float:
    """
    ICAO standard-atmosphere altitude whose density matches adr_pct.

    The physical altitude is passed through the calibration pair
    (a * ft + b) so the result lines up with the reference tuning sheet.
    """
    ratio = adr_pct / 100

    exponent = GRAVITY / (R_AIR * LAPSE_RATE) - 1
    h_m = (T0_K / LAPSE_RATE) * (1 - _real_pow(ratio, 1 / exponent))
    return calibration.a * (h_m * FEET_PER_METER) + calibration.b


def standard_correction(temp_f: float, p_inhg: float, e_inhg: float) -> Tuple[float, float, float, float]:
    """Return (tf, hf, bf, correction) for the temperature, humidity and barometer"""
    tf = _real_pow((RANKINE_OFFSET + temp_f) / RANKINE_STD, TEMP_FACTOR_EXP)
    hf = _ieee_div(p_inhg, p_inhg - e_inhg)
    bf = _ieee_div(P_STD, p_inhg)
    return tf, hf, bf, tf * hf * bf


def _ieee_div(num: float, den: float) -> float:
    # x/0 -> +-inf and 0/0 -> nan instead of ZeroDivisionError
    if den == 0:
        if num == 0 or math.isnan(num):
            return math.nan
        return math.copysign(math.inf, num) * math.copysign(1.0, den)
    return num / den


def _ieee_pow(base: float, exp: int) -> float:
    # Integer power that overflows to +-inf instead of raising OverflowError
    base = float(base)
    try:
        return base ** exp
    except OverflowError:
        if base < 0 and exp % 2:
            return -math.inf
        return math.inf


def _real_pow(base: float, exp: float) -> float:
    # Negative base with a fractional exponent is nan, not a complex number
    if base < 0 and not float(exp).is_integer():
        return math.nan
    return base ** exp


def validate_inputs(inputs: Inputs) -> None:
    """
    Fail fast on readings that would make the derivations non-finite.

    Not called by compute_racing_weather(); the pipeline itself propagates
    NaN/inf untouched.
    """
    for name in ('temp_f', 'humidity_pct', 'abs_pressure_inhg'):
        value = getattr(inputs, name)
        if not math.isfinite(value):
            raise InvalidInputsError(f"{name} must be finite, got {value}")

    e = vapor_pressure_inhg(inputs.temp_f, inputs.humidity_pct)
    if not math.isfinite(e):
        raise InvalidInputsError(
            f"Vapor pressure is not finite for {inputs.temp_f}F at {inputs.humidity_pct}%"
        )
    if inputs.abs_pressure_inhg <= e:
        raise InvalidInputsError(
            f"Absolute pressure {inputs.abs_pressure_inhg} inHg must exceed "
            f"vapor pressure {e:.4f} inHg"
        )


def compute_racing_weather(inputs: Inputs,
                           calibration: DensityAltitudeCalibration = DA_CALIBRATION) -> RawOutput:
    """Run the full derivation chain for one reading"""
    temp_f = inputs.temp_f
    humidity_pct = inputs.humidity_pct
    p = inputs.abs_pressure_inhg

    pd_value = pd_value_inhg(temp_f)
    e = pd_value * (humidity_pct / 100)

    dew_point_f = dew_point_f_from_vapor_pressure(e)
    grains = humidity_grains(p, e)

    adr_pct = adr_percent(temp_f, p, e)
    density_alt = density_altitude_ft(adr_pct, calibration)

    tf, hf, bf, correction = standard_correction(temp_f, p, e)

    return RawOutput(
        temp_f=temp_f,
        humidity_pct=humidity_pct,
        abs_pressure_inhg=p,
        pd_value=pd_value,
        vapor_pressure_inhg=e,
        dew_point_f=dew_point_f,
        humidity_grains=grains,
        adr_pct=adr_pct,
        density_alt_ft=density_alt,
        tf=tf,
        hf=hf,
        bf=bf,
        correction=correction,
    )
