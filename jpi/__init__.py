# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import mmap
import os
import typing

from . import base
from . import metrics
from .config import Options
from .session import Session, State

class DecodeError(ValueError):
    pass

@dataclass(eq=False)
class JPIFile:
    header: base.FileHeader
    flights: typing.List[base.FlightSampleSequence]
    status: base.Status
    trailing: int
    file_name: str
    options: Options

    def flight(self, fid):
        for seq in self.flights:
            if seq.header.id == fid:
                return seq
        raise KeyError(fid)

    def metadata(self, seq=None):
        return metadata(self.header, seq)

    def summary(self, seq, out_unit=None):
        return metrics.summary(seq, self.header, self.options.fuel_density, out_unit)

def metadata(hdr, seq=None):
    meta = {}
    meta['Registration'] = hdr.registration
    meta['Device Type'] = 'EDM%d' % hdr.config.model
    meta['Device Version'] = str(hdr.config.version)
    meta['Sensors'] = ', '.join(hdr.config.features.names())
    meta['Fuel Flow Units'] = hdr.fuel.unit.name
    if hdr.date:
        meta['Download Date'] = hdr.date.strftime('%m/%d/%Y %H:%M')
    if seq is not None:
        meta['Flight'] = str(seq.header.id)
        meta['Log Date'] = seq.start.strftime('%m/%d/%Y') # Yes I'm American
        meta['Log Time'] = seq.start.strftime('%H:%M:%S')
        meta['Sample Interval'] = '%d s' % seq.header.interval
    return meta

def JPI(fname, progress=None, options=None, chunk_size=1 << 16):
    if os.path.getsize(fname) == 0:
        raise DecodeError('%s: empty file' % fname)
    options = options or Options()
    session = Session(options=options)
    with open(fname, 'rb') as f:
        with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as m:
            total = len(m)
            for pos in range(0, total, chunk_size):
                session.feed(m[pos:pos + chunk_size])
                if progress:
                    progress(min(pos + chunk_size, total), total)
    session.finish()
    if session.header is None:
        raise DecodeError('%s: invalid file header' % fname)
    return JPIFile(session.header,
                   session.flights,
                   session.status,
                   session.trailing,
                   fname,
                   options)
