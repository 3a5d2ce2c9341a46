# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

"""ASCII header section of a JPI file.

Every header line has the form ``$<type>,<field>,...*<CS>\\r\\n`` where CS
is two hex digits holding the XOR of the line text between ``$`` and
``*``.  The section ends with the ``$L`` line; the binary flight blocks
follow immediately.
"""

from dataclasses import dataclass
import datetime
import logging
import typing

from . import base

logger = logging.getLogger(__name__)

DOLLAR = ord('$')
STAR = ord('*')
COMMA = ord(',')

class _Invalid:
    def __repr__(self):
        return 'INVALID'

    def __bool__(self):
        return False

INVALID = _Invalid()

def _int(s, default=0):
    try:
        return int(s)
    except ValueError:
        return default

def checksum(text, include_star=False):
    """XOR of the bytes of a header line body (type character onward)."""
    if isinstance(text, str):
        text = text.encode('ascii')
    cs = 0
    for c in text:
        if c == STAR and not include_star:
            continue
        cs ^= c
    return cs

@dataclass(frozen=True)
class HeaderLine:
    fields: typing.Tuple[str, ...]
    checksum: int = 0
    expected: typing.Optional[int] = None

    kind: typing.ClassVar[str] = ''
    attr: typing.ClassVar[str] = ''

    @property
    def checksum_ok(self):
        return self.expected == self.checksum

    def body(self):
        return ','.join((self.kind,) + self.fields)

    def value(self):
        return None

class Registration(HeaderLine):
    kind = 'U'
    attr = 'registration'

    def value(self):
        return self.fields[0] if len(self.fields) == 1 else None

class Alert(HeaderLine):
    kind = 'A'
    attr = 'alarms'

    def value(self):
        if len(self.fields) != 8:
            return base.AlarmLimits()
        return base.AlarmLimits(*[_int(f) for f in self.fields])

class FuelFlow(HeaderLine):
    kind = 'F'
    attr = 'fuel'

    def value(self):
        if len(self.fields) != 5:
            return base.FuelFlowConfig()
        unit, tank1, tank2, k1, k2 = [_int(f) for f in self.fields]
        try:
            unit = base.FuelFlowUnit(unit)
        except ValueError:
            unit = base.FuelFlowUnit.LPH
        return base.FuelFlowConfig(unit, tank1, tank2, k1, k2)

class Timestamp(HeaderLine):
    kind = 'T'
    attr = 'date'

    def value(self):
        if len(self.fields) != 6:
            return None
        mon, day, year, hour, minute = [_int(f, -1) for f in self.fields[:5]]
        try:
            return datetime.datetime(year + 2000, mon, day, hour, minute)
        except ValueError:
            return None

class Config(HeaderLine):
    kind = 'C'
    attr = 'config'

    def value(self):
        if len(self.fields) != 5:
            return base.DeviceConfig()
        return base.DeviceConfig(*[_int(f, -1) for f in self.fields])

class FlightIndex(HeaderLine):
    kind = 'D'
    attr = 'flights'

    def value(self):
        if len(self.fields) != 2:
            return None
        return base.FlightIndexEntry(_int(self.fields[0], -1), _int(self.fields[1], -1))

class LastLine(HeaderLine):
    kind = 'L'

_line_types = {cls.kind: cls
               for cls in (Registration, Alert, FuelFlow, Timestamp, Config, FlightIndex,
                           LastLine)}

def read_line(buf, pos, include_star=False):
    """Read one header line starting at buf[pos].

    Returns (line, next_pos).  line is a HeaderLine subclass, INVALID, or
    None if the buffer ends before the line does."""
    end = len(buf)
    if pos >= end:
        return None, pos
    if buf[pos] != DOLLAR:
        logger.error('header line does not start with $ at offset %d', pos)
        return INVALID, pos
    if pos + 1 >= end:
        return None, pos
    type_char = chr(buf[pos + 1])
    cs = buf[pos + 1]
    i = pos + 2
    fields = []
    item = ''
    skip = False
    while True:
        if i >= end:
            return None, pos
        c = buf[i]
        i += 1
        if c == STAR:
            if include_star:
                cs ^= c
            if item:
                fields.append(item)
            break
        cs ^= c
        if c == COMMA:
            if item:
                fields.append(item)
            item = ''
            skip = False
        elif c < 128 and chr(c).isalnum():
            if not skip:
                item += chr(c)
        elif item:
            # anything else ends the field; the rest up to ',' is ignored
            skip = True

    if i + 4 > end:
        return None, pos
    try:
        expected = int(bytes(buf[i:i+2]).decode('ascii'), 16)
    except (UnicodeDecodeError, ValueError):
        expected = None
    if expected != cs:
        logger.warning('checksum error in $%s line: %s != %02X',
                       type_char, bytes(buf[i:i+2]), cs)
    if bytes(buf[i+2:i+4]) != b'\r\n':
        logger.error('invalid token at end of $%s line: %r', type_char, bytes(buf[i+2:i+4]))
        return INVALID, i + 4

    try:
        cls = _line_types[type_char]
    except KeyError:
        logger.error('invalid line type: %r', type_char)
        return INVALID, i + 4
    logger.debug('header line $%s %s', type_char, fields)
    return cls(tuple(fields), cs, expected), i + 4

def assemble_file_header(buf, pos=0, final=True, include_star=False):
    """Read header lines up to and including $L.

    Returns a FileHeader, INVALID, or None when more data is needed (only
    possible when final is False)."""
    start = pos
    values = {}
    flights = []
    while True:
        line, pos = read_line(buf, pos, include_star)
        if line is None:
            if final:
                logger.error('header truncated at offset %d', pos)
                return INVALID
            return None
        if line is INVALID:
            return INVALID
        if isinstance(line, LastLine):
            break
        value = line.value()
        if value is None:
            logger.warning('ignoring malformed $%s line: %s', line.kind, line.fields)
        elif isinstance(line, FlightIndex):
            flights.append(value)
        else:
            values[line.attr] = value

    header = base.FileHeader(flights=tuple(flights), header_len=pos - start, **values)
    logger.info('header: %s, %d flights, %d bytes total',
                header.registration, len(header.flights), header.total_len)
    return header
