# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

"""Incremental decoding of a whole JPI file.

A Session owns an append-only buffer and a cursor into it.  Every call to
decode() advances as far as the buffered bytes allow and then stops; feeding
more bytes resumes at the same step.
"""

from dataclasses import dataclass, replace
import datetime
import enum
import logging
import typing

from . import base
from . import config
from . import flight
from . import header
from . import record

logger = logging.getLogger(__name__)

class State(enum.Enum):
    AWAITING_FILE_HEADER = 1
    AWAITING_FLIGHT_HEADER = 2
    DECODING_SAMPLES = 3
    COMPLETE = 4
    INVALID = 5

@dataclass
class _FlightProgress:
    sequence: base.FlightSampleSequence
    end: int
    state: record.DecoderState
    previous: base.SampleRecord
    body_size: int
    body_bytes: int = 0

class Session:
    def __init__(self, data=b'', final=False, options=None):
        self.options = options or config.Options()
        self.buf = bytearray(data)
        self.final = final
        self.pos = 0
        self.state = State.AWAITING_FILE_HEADER
        self.header: typing.Optional[base.FileHeader] = None
        self.flights: typing.List[base.FlightSampleSequence] = []
        self.flight_index = 0
        self._progress: typing.Optional[_FlightProgress] = None
        if data or final:
            self.decode()

    @property
    def status(self):
        if self.state == State.COMPLETE:
            return base.Status.COMPLETE
        if self.state == State.INVALID:
            return base.Status.INVALID
        return base.Status.PARSING

    @property
    def engines(self):
        if self.options.engines:
            return self.options.engines
        return self.header.config.engines if self.header else 1

    @property
    def trailing(self):
        if self.state != State.COMPLETE:
            return 0
        return max(0, len(self.buf) - self.pos)

    def feed(self, chunk):
        self.buf += chunk
        return self.decode()

    def finish(self):
        self.final = True
        return self.decode()

    def decode(self):
        steps = {
            State.AWAITING_FILE_HEADER: self._file_header,
            State.AWAITING_FLIGHT_HEADER: self._flight_header,
            State.DECODING_SAMPLES: self._samples,
        }
        while self.state in steps:
            if not steps[self.state]():
                break
        return self.status

    def _fail(self, msg, *args):
        logger.error(msg, *args)
        if self._progress:
            self._progress.sequence.status = base.Status.INVALID
            self._progress = None
        self.state = State.INVALID
        return False

    def _file_header(self):
        if not self.final and len(self.buf) < self.options.header_prefetch:
            return False
        hdr = header.assemble_file_header(self.buf, 0, self.final,
                                          self.options.checksum_includes_star)
        if hdr is None:
            return False
        if hdr is header.INVALID:
            return self._fail('invalid file header')
        self.header = hdr
        self.pos = hdr.header_len
        self.state = State.AWAITING_FLIGHT_HEADER
        return True

    def _flight_header(self):
        if self.flight_index == len(self.header.flights):
            self.state = State.COMPLETE
            if self.trailing:
                logger.warning('%d bytes of trailing data after last flight', self.trailing)
            return False

        entry = self.header.flights[self.flight_index]
        if entry.size_bytes < flight.FLIGHT_HEADER_SIZE:
            return self._fail('flight %d too short (%d bytes)', entry.id, entry.size_bytes)
        fh = flight.decode_flight_header(self.buf, self.pos)
        if fh is None:
            if self.final:
                return self._fail('file ends inside header of flight %d', entry.id)
            return False
        if fh.id != entry.id:
            return self._fail('flight ids dont match, wanted %d found %d', entry.id, fh.id)
        if fh.start is None:
            return self._fail('no valid start date in header of flight %d', fh.id)
        if fh.features != self.header.config.features:
            logger.warning('flight %d feature flags %08x differ from file %08x',
                           fh.id, fh.features.value, self.header.config.features.value)

        seq = base.FlightSampleSequence(fh, engines=self.engines,
                                         temp_unit=self.options.temperature_unit)
        self.flights.append(seq)
        end = self.pos + entry.size_bytes
        self.pos += flight.FLIGHT_HEADER_SIZE
        state = record.initial_state(fh)
        self._progress = _FlightProgress(seq, end, state,
                                         record.initial_record(state, self.engines),
                                         entry.size_bytes - flight.FLIGHT_HEADER_SIZE)
        self.state = State.DECODING_SAMPLES
        return True

    def _samples(self):
        prog = self._progress
        seq = prog.sequence
        num_cylinders = seq.header.features.num_cylinders
        while (not self.options.headers_only
               and self.pos + record.MIN_RECORD_SIZE <= prog.end):
            res = record.decode_record(self.buf, self.pos, prog.end, prog.state,
                                       engines=self.engines,
                                       num_cylinders=num_cylinders,
                                       reuse_masks=self.options.reuse_masks)
            if res is None:
                if self.final or len(self.buf) >= prog.end:
                    return self._fail('record at offset %d overruns flight %d',
                                      self.pos, seq.header.id)
                return False
            rec, state, pos = res
            for i in range(rec.repeat_count):
                seq.samples.append(replace(
                    prog.previous,
                    repeat_count=0,
                    timestamp=prog.state.timestamp
                    + datetime.timedelta(seconds=i * prog.state.interval)))
            seq.samples.append(rec)
            prog.body_bytes += pos - self.pos
            prog.previous = rec
            prog.state = state
            self.pos = pos

        if len(self.buf) < prog.end:
            if self.final:
                return self._fail('file ends %d bytes short of the end of flight %d',
                                  prog.end - len(self.buf), seq.header.id)
            return False

        # 0-2 bytes of padding may remain before the next flight
        assert prog.body_bytes <= prog.body_size
        logger.info('flight %d: %d samples', seq.header.id, len(seq.samples))
        seq.status = base.Status.COMPLETE
        self.pos = prog.end
        self._progress = None
        self.flight_index += 1
        self.state = State.AWAITING_FLIGHT_HEADER
        return True
