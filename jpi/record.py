# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

"""Binary sample records of a flight block.

A record only carries what changed since the previous one:

  u16 decode flags    bit i (0-5) -> value mask byte i and sign mask byte i
                      present, bit 6+i -> scale mask byte i present
  s8  repeat count    copies of the previous sample preceding this one
  value mask bytes    one bit per channel that has a delta byte
  scale mask bytes    one bit per wide channel that has a high byte
  sign mask bytes     one bit per channel whose delta is negative
  delta bytes         one per value mask bit, in channel order
  high bytes          one per scale mask bit
  u8  reserved

A delta byte of zero means the sensor is not available.
"""

from dataclasses import dataclass
import datetime
import logging
import typing

from . import base
from . import channels as chmap

logger = logging.getLogger(__name__)

VALUE_MASK_BYTES = 6
SCALE_MASK_BYTES = 3
SIGN_MASK_BYTES = 6
SCALE_STRIDE = 24 # scale byte i covers channels 24*i .. 24*i + 7

MIN_RECORD_SIZE = 3

@dataclass(frozen=True)
class DecoderState:
    values: typing.Tuple[int, ...]
    na: typing.Tuple[bool, ...]
    value_mask: int = 0
    scale_mask: int = 0
    sign_mask: int = 0
    timestamp: typing.Optional[datetime.datetime] = None
    interval: int = 0
    nominal_interval: int = 0

def initial_state(header):
    return DecoderState(values=(0,) * chmap.NUM_CHANNELS,
                        na=(False,) * chmap.NUM_CHANNELS,
                        timestamp=header.start,
                        interval=header.interval,
                        nominal_interval=header.interval)

def initial_record(state, engines=1):
    return base.SampleRecord(values=state.values,
                             na=state.na,
                             diff=(0,) * engines,
                             timestamp=state.timestamp)

class Truncated(Exception):
    pass

class _Cursor:
    def __init__(self, buf, pos, limit):
        self.buf = buf
        self.pos = pos
        self.limit = min(limit, len(buf))

    def byte(self):
        if self.pos >= self.limit:
            raise Truncated
        b = self.buf[self.pos]
        self.pos += 1
        return b

    def u16(self):
        return (self.byte() << 8) | self.byte()

    def s8(self):
        b = self.byte()
        return b - 256 if b >= 128 else b

    def mask(self, decode_flags, first_bit, nbytes, previous, reuse):
        mask = 0
        for i in range(nbytes):
            if (decode_flags >> (first_bit + i)) & 1:
                mask |= self.byte() << (8 * i)
            elif reuse:
                mask |= previous & (0xff << (8 * i))
        return mask

def cooling_diff(values, na, engines, num_cylinders):
    """Spread between the hottest and coolest available cylinder, per engine."""
    diff = []
    for chans in chmap.egt_channels(engines, num_cylinders):
        avail = [values[c] for c in chans if not na[c]]
        diff.append(max(avail) - min(avail) if avail else 0)
    return tuple(diff + [0] * (engines - len(diff)))

def decode_record(buf, pos, limit, state, engines=1, num_cylinders=0, reuse_masks=True):
    """Decode the record at buf[pos:limit] on top of state.

    Returns (SampleRecord, DecoderState, next_pos), or None if the record
    runs past limit.  state is not modified."""
    cur = _Cursor(buf, pos, limit)
    try:
        decode_flags = cur.u16()
        repeat_count = cur.s8()
        value_mask = cur.mask(decode_flags, 0, VALUE_MASK_BYTES,
                              state.value_mask, reuse_masks)
        scale_mask = cur.mask(decode_flags, VALUE_MASK_BYTES, SCALE_MASK_BYTES,
                              state.scale_mask, reuse_masks)
        sign_mask = cur.mask(decode_flags, 0, SIGN_MASK_BYTES,
                             state.sign_mask, reuse_masks)

        values = list(state.values)
        na = list(state.na)
        for idx in range(chmap.NUM_CHANNELS):
            if not (value_mask >> idx) & 1:
                continue
            delta = cur.byte()
            if delta == 0:
                na[idx] = True
                continue
            na[idx] = False
            values[idx] += -delta if (sign_mask >> idx) & 1 else delta

        for bit in range(SCALE_MASK_BYTES * 8):
            if not (scale_mask >> bit) & 1:
                continue
            high = cur.byte()
            idx = bit % 8 + (bit // 8) * SCALE_STRIDE
            if idx >= chmap.NUM_CHANNELS:
                logger.debug('dropping high byte for scale bit %d', bit)
                continue
            na[idx] = high == 0
            values[idx] += -(high << 8) if (sign_mask >> idx) & 1 else high << 8

        if engines == 1:
            if (sign_mask >> chmap.RPM_LO) & 1:
                values[chmap.RPM_HI] = state.values[chmap.RPM_HI]
            if values[chmap.RPM_HI] != 0:
                na[chmap.RPM_HI] = False

        cur.byte() # reserved
    except Truncated:
        return None

    timestamp = state.timestamp
    if timestamp is not None and repeat_count > 0:
        timestamp += datetime.timedelta(seconds=repeat_count * state.interval)

    record = base.SampleRecord(values=tuple(values),
                               na=tuple(na),
                               diff=cooling_diff(values, na, engines, num_cylinders),
                               timestamp=timestamp,
                               repeat_count=max(repeat_count, 0))

    interval = state.interval
    if record.mark == 2:
        interval = 1
    elif record.mark == 3:
        interval = state.nominal_interval

    logger.debug('record at %d: flags %04x repeat %d values %s',
                 pos, decode_flags, repeat_count, values)
    return (record,
            DecoderState(values=record.values,
                         na=record.na,
                         value_mask=value_mask,
                         scale_mask=scale_mask,
                         sign_mask=sign_mask,
                         timestamp=(timestamp + datetime.timedelta(seconds=interval)
                                    if timestamp is not None else None),
                         interval=interval,
                         nominal_interval=state.nominal_interval),
            cur.pos)
