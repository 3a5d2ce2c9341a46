# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import datetime
import struct

from . import base

FLIGHT_HEADER_SIZE = 15

_flight_header = struct.Struct('>7HB')
assert _flight_header.size == FLIGHT_HEADER_SIZE

def _decode_date(dt, tm):
    # day:5 mon:4 year:7 / secs/2:5 mins:6 hrs:5
    try:
        return datetime.datetime((dt >> 9) + 2000, (dt >> 5) & 0xf, dt & 0x1f,
                                 tm >> 11, (tm >> 5) & 0x3f, (tm & 0x1f) * 2)
    except ValueError:
        return None

def decode_flight_header(buf, pos):
    if len(buf) - pos < FLIGHT_HEADER_SIZE:
        return None
    (fid, flags_hi, flags_lo, reserved, interval,
     dt, tm, checksum) = _flight_header.unpack_from(buf, pos)
    # the trailing checksum byte is kept but not verified
    return base.FlightHeader(id=fid,
                             features=base.FeatureMask.from_words(flags_hi, flags_lo),
                             reserved=reserved,
                             interval=interval,
                             start=_decode_date(dt, tm),
                             checksum=checksum)
