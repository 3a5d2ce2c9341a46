# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from array import array
from dataclasses import dataclass, field
import datetime
import enum
import typing

import numpy as np

from . import channels as chmap

class Status(enum.Enum):
    PARSING = 'parsing'
    COMPLETE = 'complete'
    INVALID = 'invalid'

# -m-d fpai r2to eeee eeee eccc cccc cc-b
_feature_bits = {
    'battery': 0,
    'oil': 20,
    'tit': 21,
    'tit2': 22,
    'carb': 23,
    'oat': 24,
    'rpm': 25,
    'ff': 27,
    'cld': 28,
    'map': 30,
}

CYLINDER_BITS = tuple(range(2, 11))
EGT_BITS = tuple(range(11, 20))

@dataclass(frozen=True)
class FeatureMask:
    value: int = 0

    @classmethod
    def from_words(cls, high, low):
        return cls(((high & 0xffff) << 16) | (low & 0xffff))

    def has(self, feature):
        return bool((self.value >> _feature_bits[feature]) & 1)

    battery = property(lambda self: self.has('battery'))
    oil = property(lambda self: self.has('oil'))
    tit = property(lambda self: self.has('tit'))
    tit2 = property(lambda self: self.has('tit2'))
    carb = property(lambda self: self.has('carb'))
    oat = property(lambda self: self.has('oat'))
    rpm = property(lambda self: self.has('rpm'))
    ff = property(lambda self: self.has('ff'))
    cld = property(lambda self: self.has('cld'))
    map = property(lambda self: self.has('map'))

    @property
    def cylinders(self):
        return [(self.value >> bit) & 1 == 1 for bit in CYLINDER_BITS]

    @property
    def egts(self):
        return [(self.value >> bit) & 1 == 1 for bit in EGT_BITS]

    @property
    def num_cylinders(self):
        return sum(self.cylinders)

    def names(self):
        return ['%d cylinders' % self.num_cylinders] + [f for f in _feature_bits if self.has(f)]

@dataclass(frozen=True)
class AlarmLimits:
    volts_hi: int = 0 # volts * 10
    volts_low: int = 0
    diff: int = 0
    cht: int = 0
    cld: int = 0
    tit: int = 0
    oil_hi: int = 0
    oil_low: int = 0

class FuelFlowUnit(enum.Enum):
    GPH = 0 # gallon per hour
    PPH = 1 # pound per hour
    LPH = 2 # liter per hour
    KPH = 3 # kilogram per hour

    @property
    def volume_unit(self):
        return {'GPH': 'USgal', 'PPH': 'lb', 'LPH': 'l', 'KPH': 'kg'}[self.name]

@dataclass(frozen=True)
class FuelFlowConfig:
    unit: FuelFlowUnit = FuelFlowUnit.LPH
    tank1: int = 0
    tank2: int = 0
    k1: int = 0
    k2: int = 0

@dataclass(frozen=True)
class DeviceConfig:
    model: int = 0
    flags_low: int = 0
    flags_high: int = 0
    unknown: int = 0
    version: int = 0

    @property
    def features(self):
        return FeatureMask.from_words(self.flags_high, self.flags_low)

    @property
    def engines(self):
        return chmap.num_engines(self.model)

@dataclass(frozen=True)
class FlightIndexEntry:
    id: int
    size_words: int

    @property
    def size_bytes(self):
        return self.size_words * 2

@dataclass(frozen=True)
class FileHeader:
    registration: str = ''
    date: typing.Optional[datetime.datetime] = None
    alarms: AlarmLimits = AlarmLimits()
    fuel: FuelFlowConfig = FuelFlowConfig()
    config: DeviceConfig = DeviceConfig()
    flights: typing.Tuple[FlightIndexEntry, ...] = ()
    header_len: int = 0

    @property
    def total_len(self):
        return self.header_len + sum(f.size_bytes for f in self.flights)

@dataclass(frozen=True)
class FlightHeader:
    id: int
    features: FeatureMask
    reserved: int
    interval: int # seconds
    start: typing.Optional[datetime.datetime]
    checksum: int

@dataclass(frozen=True)
class SampleRecord:
    values: typing.Tuple[int, ...]
    na: typing.Tuple[bool, ...]
    diff: typing.Tuple[int, ...]
    timestamp: typing.Optional[datetime.datetime]
    repeat_count: int = 0

    @property
    def mark(self):
        return self.values[chmap.MARK]

@dataclass(eq=False)
class Channel:
    timecodes: array
    values: array
    dec_pts: int
    name: str
    units: str

@dataclass
class FlightSampleSequence:
    header: FlightHeader
    samples: typing.List[SampleRecord] = field(default_factory=list)
    status: Status = Status.PARSING
    engines: int = 1
    temp_unit: str = 'F'

    @property
    def start(self):
        return self.header.start

    @property
    def duration(self):
        if not self.samples:
            return 0.
        return (self.samples[-1].timestamp - self.samples[0].timestamp).total_seconds()

    def timecodes(self):
        # seconds since the flight header start time
        return np.array([(s.timestamp - self.header.start).total_seconds()
                         for s in self.samples], dtype=np.float64)

    def values(self):
        return np.array([s.values for s in self.samples],
                        dtype=np.int32).reshape(len(self.samples), chmap.NUM_CHANNELS)

    def na(self):
        return np.array([s.na for s in self.samples],
                        dtype=bool).reshape(len(self.samples), chmap.NUM_CHANNELS)

    def diffs(self):
        return np.array([s.diff for s in self.samples],
                        dtype=np.int32).reshape(len(self.samples), self.engines)

    def rpm(self):
        # slots 41 and 42 hold right engine sensors on twins
        if self.engines != 1:
            return None
        vals = self.values()
        return vals[:, chmap.RPM_LO] + (vals[:, chmap.RPM_HI] << 8)

    def channels(self):
        """Per channel arrays in the shape the log viewers expect: timecodes
        in ms, values scaled by dec_pts, NA samples dropped."""
        tc = self.timecodes() * 1000
        vals = self.values()
        na = self.na()
        names = chmap.names(self.engines)
        result = {}
        for idx, name in enumerate(names):
            if self.engines == 1 and idx in (chmap.RPM_LO, chmap.RPM_HI):
                continue
            if not np.any(vals[:, idx]) and not np.any(na[:, idx]):
                continue # never reported
            units, dec_pts = chmap.units(name, self.temp_unit)
            keep = ~na[:, idx]
            result[name] = Channel(tc[keep].data,
                                   (vals[keep, idx] / 10 ** dec_pts).data,
                                   dec_pts=dec_pts,
                                   name=name,
                                   units=units)
        if self.engines == 1 and len(self.samples):
            keep = ~na[:, chmap.RPM_LO]
            if np.any(self.rpm()[keep]):
                result['RPM'] = Channel(tc[keep].data,
                                        self.rpm()[keep].astype(np.float64).data,
                                        dec_pts=0,
                                        name='RPM',
                                        units='rpm')
        return result
