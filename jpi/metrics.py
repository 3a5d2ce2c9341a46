# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

"""Analytics over a decoded flight: peaks, alarm intervals, failed sensors
and fuel burn.  Nothing here modifies the flight."""

from dataclasses import dataclass
import datetime
import enum
import typing

import numpy as np

from . import channels as chmap
from . import unitconv

class Kind(enum.Enum):
    CHT = 'CHT'
    EGT = 'EGT'
    TIT = 'TIT'
    OILHI = 'OILHI'
    OILLOW = 'OILLOW'
    BATHI = 'BATHI'
    BATLOW = 'BATLOW'
    OATLO = 'OATLO'
    CLD = 'CLD'
    DIFF = 'DIFF'
    MAP = 'MAP'
    RPM = 'RPM'
    FF = 'FF'

class Interval(typing.NamedTuple):
    index: int # first sample
    start: float # seconds since flight start
    duration: float # seconds
    value: int # most extreme value in the interval

class NAInterval(typing.NamedTuple):
    index: int
    start: float
    duration: float

class PeakValue(typing.NamedTuple):
    offset: float # seconds since flight start
    value: int

def _slots(*idx):
    # the same sensor on both engines of a twin
    def select(seq):
        chans = list(idx)
        if seq.engines == 2:
            chans += [i + 24 for i in idx]
        return seq.values()[:, chans], seq.na()[:, chans]
    return select

def _cylinders(table):
    def select(seq):
        chans = [c for engine in table(seq.engines, seq.header.features.num_cylinders)
                 for c in engine]
        return seq.values()[:, chans], seq.na()[:, chans]
    return select

def _diff(seq):
    diffs = seq.diffs()
    return diffs, np.zeros(diffs.shape, dtype=bool)

def _rpm(seq):
    return seq.rpm().reshape(-1, 1), seq.na()[:, [chmap.RPM_LO]]

def _named(name):
    def select(seq):
        idx = chmap.index(name, seq.engines)
        return seq.values()[:, [idx]], seq.na()[:, [idx]]
    return select

@dataclass(frozen=True)
class _KindInfo:
    longname: str
    feature: typing.Callable
    select: typing.Callable
    maximum: bool
    threshold: typing.Optional[typing.Callable] = None
    exceeds: typing.Optional[typing.Callable] = None
    single_only: bool = False # no slot for it on twin installs

_above = lambda v, limit: v > limit
_below = lambda v, limit: v < limit
_has_cylinders = lambda f: f.num_cylinders > 0

_kinds = {
    Kind.CHT: _KindInfo('Cylinder head temperature', _has_cylinders,
                        _cylinders(chmap.cht_channels), True, lambda a: a.cht, _above),
    Kind.EGT: _KindInfo('Exhaust gas temperature', _has_cylinders,
                        _cylinders(chmap.egt_channels), True),
    Kind.TIT: _KindInfo('Turbine inlet temperature', lambda f: f.tit,
                        _slots(6), True, lambda a: a.tit, _above),
    Kind.OILHI: _KindInfo('Oil temperature', lambda f: f.oil,
                          _slots(15), True, lambda a: a.oil_hi, _above),
    Kind.OILLOW: _KindInfo('Oil temperature', lambda f: f.oil,
                           _slots(15), False, lambda a: a.oil_low, _below),
    Kind.BATHI: _KindInfo('Battery voltage', lambda f: f.battery,
                          _slots(20), True, lambda a: a.volts_hi, _above),
    Kind.BATLOW: _KindInfo('Battery voltage', lambda f: f.battery,
                           _slots(20), False, lambda a: a.volts_low, _below),
    Kind.OATLO: _KindInfo('Outside air temperature', lambda f: f.oat,
                          _slots(21), False),
    # cooling rates are negative, the limit is given as a positive rate
    Kind.CLD: _KindInfo('Cylinder cooling rate', lambda f: f.cld,
                        _slots(14), False, lambda a: a.cld, lambda v, limit: -v > limit),
    Kind.DIFF: _KindInfo('EGT differential', _has_cylinders,
                         _diff, True, lambda a: a.diff, _above),
    Kind.MAP: _KindInfo('Manifold pressure', lambda f: f.map,
                        _named('MAP'), True, single_only=True),
    Kind.RPM: _KindInfo('Engine speed', lambda f: f.rpm, _rpm, True, single_only=True),
    Kind.FF: _KindInfo('Fuel flow', lambda f: f.ff, _slots(23), True),
}

def longname(kind):
    return _kinds[kind].longname

def _available(seq, info):
    if info.single_only and seq.engines > 1:
        return False
    return bool(info.feature(seq.header.features))

def supported(seq, kind):
    return _available(seq, _kinds[kind])

def threshold(kind, alarms):
    info = _kinds[kind]
    return info.threshold(alarms) if info.threshold else None

def exceeds(value, kind, alarms):
    """True/False if value trips the alarm for kind, None without a limit."""
    limit = threshold(kind, alarms)
    if not limit:
        return None
    return bool(_kinds[kind].exceeds(value, limit))

def _runs(flags):
    edges = np.diff(np.concatenate(([0], np.asarray(flags, dtype=np.int8), [0])))
    return zip(np.nonzero(edges == 1)[0], np.nonzero(edges == -1)[0])

def _end_time(tc, end, interval):
    # end is exclusive; a run reaching the last sample lasts one interval more
    return tc[end] if end < len(tc) else tc[-1] + interval

def _masked(seq, info):
    vals, na = info.select(seq)
    return np.ma.masked_array(vals, mask=na)

def peak(seq, kind):
    """(sample index, value) of the extreme reading, or None if unsupported."""
    info = _kinds[kind]
    if not _available(seq, info) or not seq.samples:
        return None
    data = _masked(seq, info)
    if data.size == 0 or data.mask.all():
        return None
    flat = data.argmax() if info.maximum else data.argmin()
    return int(flat // data.shape[1]), int(data.data.ravel()[flat])

def warning_intervals(seq, kind, alarms):
    info = _kinds[kind]
    limit = threshold(kind, alarms)
    if not limit or not _available(seq, info):
        return None
    if not seq.samples:
        return []
    data = _masked(seq, info)
    if data.shape[1] == 0:
        return []
    extreme = data.max(axis=1) if info.maximum else data.min(axis=1)
    tripped = np.ma.filled(info.exceeds(extreme, limit), False)
    tc = seq.timecodes()
    result = []
    for start, end in _runs(tripped):
        run = extreme[start:end]
        value = run.max() if info.maximum else run.min()
        result.append(Interval(int(start),
                               float(tc[start]),
                               float(_end_time(tc, end, seq.header.interval) - tc[start]),
                               int(value)))
    return result

def na_intervals(seq):
    """Failed sensors: channel name -> intervals where it reported NA."""
    if not seq.samples:
        return {}
    na = seq.na()
    tc = seq.timecodes()
    result = {}
    for idx, name in enumerate(chmap.names(seq.engines)):
        if not na[:, idx].any():
            continue
        result[name] = [NAInterval(int(start),
                                   float(tc[start]),
                                   float(_end_time(tc, end, seq.header.interval) - tc[start]))
                        for start, end in _runs(na[:, idx])]
    return result

def convert_fuel(amount, from_unit, to_unit, density=6.0):
    """Convert between fuel volumes and masses, density in lb per US gallon."""
    res = unitconv.convert(amount, from_unit, to_unit)
    if res is not None:
        return res
    src = unitconv.property_of(from_unit)
    dst = unitconv.property_of(to_unit)
    if src == 'Volume' and dst == 'Mass':
        return unitconv.convert(unitconv.convert(amount, from_unit, 'USgal') * density,
                                'lb', to_unit)
    if src == 'Mass' and dst == 'Volume':
        return unitconv.convert(unitconv.convert(amount, from_unit, 'lb') / density,
                                'USgal', to_unit)
    return None

def fuel_used(seq, fuel, out_unit=None, density=6.0):
    """Fuel burned over the flight in the volume unit matching the configured
    flow unit (or out_unit).  None without a fuel flow sensor."""
    if not seq.header.features.ff:
        return None
    if len(seq.samples) < 2:
        return 0.
    vals, na = _kinds[Kind.FF].select(seq)
    flow = np.where(na, 0, vals).sum(axis=1) / 10 # tenths of a unit per hour
    used = float(np.sum(flow[:-1] * np.diff(seq.timecodes())) / 3600)
    if out_unit is None:
        return used
    converted = convert_fuel(used, fuel.unit.volume_unit, out_unit, density)
    if converted is None:
        raise ValueError('cannot convert %s to %s' % (fuel.unit.volume_unit, out_unit))
    return float(converted)

@dataclass(frozen=True)
class FlightSummary:
    id: int
    registration: str
    start: datetime.datetime
    duration: float
    fuel_used: typing.Optional[float]
    max_cht: typing.Optional[PeakValue]
    max_egt: typing.Optional[PeakValue]
    max_oil: typing.Optional[PeakValue]
    max_diff: typing.Optional[PeakValue]

def peak_value(seq, kind):
    res = peak(seq, kind)
    if res is None:
        return None
    idx, value = res
    return PeakValue((seq.samples[idx].timestamp - seq.start).total_seconds(), value)

def summary(seq, file_header, density=6.0, out_unit=None):
    return FlightSummary(id=seq.header.id,
                         registration=file_header.registration,
                         start=seq.start,
                         duration=seq.duration,
                         fuel_used=fuel_used(seq, file_header.fuel, out_unit, density),
                         max_cht=peak_value(seq, Kind.CHT),
                         max_egt=peak_value(seq, Kind.EGT),
                         max_oil=peak_value(seq, Kind.OILHI),
                         max_diff=peak_value(seq, Kind.DIFF))
