# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import datetime
import logging

import pytest

from jpi import base
from jpi.config import Options
from jpi.session import Session, State

import jpibuild as build

def seconds(n):
    return build.START + datetime.timedelta(seconds=n)

def two_flights():
    enc = build.RecordEncoder()
    first = [enc.encode({0: 100, 3: 10, 15: 180, 23: 90}),
             enc.encode({0: 20, 3: 5}, repeat=2),
             enc.encode({0: -4, 3: 0}, na=[3])]
    enc = build.RecordEncoder()
    second = [enc.encode({0: 200}, scale={0: 4}),
              enc.encode({16: 2}),
              enc.encode({0: 1, 16: 1}),
              enc.encode({0: 1})]
    return [(1, first), (2, second, {'interval': 2})]

def test_complete_file():
    data = build.jpi_file(two_flights())
    s = Session(data, final=True)
    assert s.state == State.COMPLETE
    assert s.status == base.Status.COMPLETE
    assert s.trailing == 0
    assert s.pos == s.header.total_len == len(data)
    assert [f.header.id for f in s.flights] == [1, 2]
    assert all(f.status == base.Status.COMPLETE for f in s.flights)
    first, second = s.flights
    assert len(first.samples) == 5
    assert [r.values[3] for r in first.samples] == [10, 10, 10, 15, 15]
    assert first.samples[-1].na[3]
    assert first.samples[-1].values[0] == 116
    assert len(second.samples) == 4
    assert second.samples[0].values[0] == 200 + (4 << 8)

def test_header_only_flight():
    # nothing but the flight header and its pad byte
    s = Session(build.jpi_file([(1, [])]), final=True)
    assert s.status == base.Status.COMPLETE
    assert s.flights[0].samples == []
    assert s.flights[0].status == base.Status.COMPLETE

def test_no_flights():
    data = build.file_header()
    s = Session(data, final=True)
    assert s.status == base.Status.COMPLETE
    assert s.flights == []
    assert s.pos == len(data)

def test_repeat_emits_previous():
    enc = build.RecordEncoder()
    s = Session(build.jpi_file([(1, [enc.encode({3: 10}),
                                      enc.encode({3: 5}, repeat=3)])]), final=True)
    samples = s.flights[0].samples
    assert len(samples) == 5
    for copy in samples[1:4]:
        assert copy.values == samples[0].values
        assert copy.na == samples[0].na
        assert copy.repeat_count == 0
    assert [r.timestamp for r in samples] == [seconds(n) for n in (0, 6, 12, 18, 24)]
    assert samples[4].values[3] == 15
    assert samples[4].repeat_count == 3

def test_repeat_before_first_record():
    s = Session(build.jpi_file([(1, [build.RecordEncoder().encode({3: 10}, repeat=2)])]),
                final=True)
    samples = s.flights[0].samples
    assert len(samples) == 3
    assert samples[0].values == (0,) * 48
    assert samples[2].values[3] == 10
    assert samples[2].timestamp == seconds(12)

def test_timestamps_increase():
    s = Session(build.jpi_file(two_flights()), final=True)
    for seq in s.flights:
        stamps = [r.timestamp for r in seq.samples]
        assert stamps == sorted(stamps)
        assert stamps[0] >= seq.start
    # mark 2 switches to 1 second samples, mark 3 back to the flight interval
    assert [r.timestamp for r in s.flights[1].samples] == [seconds(n) for n in (0, 2, 3, 5)]

def test_streaming_matches_whole():
    data = build.jpi_file(two_flights())
    whole = Session(data, final=True)
    for size in (1, 7, 64):
        s = Session(options=Options(header_prefetch=0))
        for pos in range(0, len(data), size):
            s.feed(data[pos:pos + size])
        assert s.finish() == base.Status.COMPLETE
        assert s.header == whole.header
        assert s.flights == whole.flights

def test_header_prefetch():
    data = build.jpi_file(two_flights())
    assert len(data) < Options().header_prefetch
    s = Session(data)
    assert s.state == State.AWAITING_FILE_HEADER
    assert s.header is None
    assert s.finish() == base.Status.COMPLETE
    assert len(s.flights) == 2

def test_partial_then_rest():
    data = build.jpi_file(two_flights())
    s = Session(data[:-5], options=Options(header_prefetch=0))
    assert s.status == base.Status.PARSING
    assert s.state == State.DECODING_SAMPLES
    assert s.flights[-1].status == base.Status.PARSING
    s.feed(data[-5:])
    assert s.status == base.Status.COMPLETE
    assert s.flights == Session(data, final=True).flights

def test_truncated_file():
    data = build.jpi_file(two_flights())
    s = Session(data[:-5], final=True)
    assert s.status == base.Status.INVALID
    assert s.flights[0].status == base.Status.COMPLETE
    assert s.flights[1].status == base.Status.INVALID

def test_truncated_padding():
    # one 8 byte record leaves a pad byte at the end of the flight
    data = build.jpi_file([(1, [build.RecordEncoder().encode({0: 5, 3: 10})])])
    s = Session(data[:-1], final=True)
    assert s.status == base.Status.INVALID
    assert s.flights[0].status == base.Status.INVALID
    assert s.trailing == 0

    s = Session(data[:-1], options=Options(header_prefetch=0))
    assert s.status == base.Status.PARSING
    assert s.flights[0].status == base.Status.PARSING
    assert s.feed(data[-1:]) == base.Status.COMPLETE
    assert s.flights[0].samples[0].values[3] == 10

def test_truncated_flight_header():
    data = build.jpi_file([(1, [])])
    s = Session(data[:-8], final=True)
    assert s.status == base.Status.INVALID
    assert s.flights == []

def test_flight_id_mismatch():
    flights = two_flights()
    flights[1] = (2, flights[1][1], {'header_id': 3})
    s = Session(build.jpi_file(flights), final=True)
    assert s.status == base.Status.INVALID
    assert len(s.flights) == 1
    assert s.flights[0].status == base.Status.COMPLETE

def test_record_overruns_flight():
    # claims all six mask bytes but the flight ends
    s = Session(build.jpi_file([(1, [bytes([0x00, 0x3f, 0x00])])]), final=True)
    assert s.status == base.Status.INVALID
    assert s.flights[0].status == base.Status.INVALID

def test_flight_too_short():
    data = build.file_header([(1, 4)]) + build.flight_header(1)
    assert Session(data, final=True).status == base.Status.INVALID

def test_flight_without_date():
    data = bytearray(build.jpi_file([(1, [])]))
    hdr_len = len(data) - 16
    data[hdr_len + 10:hdr_len + 12] = b'\x00\x00'
    s = Session(data, final=True)
    assert s.status == base.Status.INVALID
    assert s.flights == []

def test_missing_last_line():
    s = Session(build.file_header([(1, 8)], last=False), final=True)
    assert s.state == State.INVALID
    assert s.header is None
    assert s.flights == []

def test_trailing_data(caplog):
    with caplog.at_level(logging.WARNING):
        s = Session(build.jpi_file(two_flights(), trailing=b'junk'), final=True)
    assert s.status == base.Status.COMPLETE
    assert s.trailing == 4
    assert 'trailing' in caplog.text

def test_feature_mismatch_warns(caplog):
    with caplog.at_level(logging.WARNING):
        s = Session(build.jpi_file([(1, [], {'flags': build.FLAGS | build.MAP})]), final=True)
    assert s.status == base.Status.COMPLETE
    assert s.flights[0].header.features.map
    assert 'feature flags' in caplog.text

def test_headers_only():
    data = build.jpi_file(two_flights())
    s = Session(data, final=True, options=Options(headers_only=True))
    assert s.status == base.Status.COMPLETE
    assert [f.header.id for f in s.flights] == [1, 2]
    assert all(f.samples == [] for f in s.flights)
    assert s.pos == len(data)

def test_headers_only_truncated():
    data = build.jpi_file(two_flights())
    s = Session(data[:-3], final=True, options=Options(headers_only=True))
    assert s.status == base.Status.INVALID
    assert s.flights[0].status == base.Status.COMPLETE
    assert s.flights[1].status == base.Status.INVALID

def test_temperature_unit():
    s = Session(build.jpi_file([(1, [])]), final=True, options=Options(temperature_unit='C'))
    assert s.flights[0].temp_unit == 'C'

def test_masks_not_reused():
    enc = build.RecordEncoder(reuse=False)
    records = [enc.encode({3: 10}), enc.encode({}), enc.encode({3: 1})]
    s = Session(build.jpi_file([(1, records)]), final=True,
                options=Options(reuse_masks=False))
    assert s.status == base.Status.COMPLETE
    assert [r.values[3] for r in s.flights[0].samples] == [10, 10, 11]

@pytest.mark.parametrize('model,engines', [(700, 1), (830, 1), (760, 2), (960, 2)])
def test_engines_from_model(model, engines):
    s = Session(build.jpi_file([(1, [])], model=model), final=True)
    assert s.engines == engines
    assert s.flights[0].engines == engines

def test_engines_option():
    s = Session(build.jpi_file([(1, [])]), final=True, options=Options(engines=2))
    assert s.flights[0].engines == 2

def test_feed_after_invalid():
    s = Session(build.file_header(last=False), final=True)
    assert s.feed(build.line('L', 0)) == base.Status.INVALID
