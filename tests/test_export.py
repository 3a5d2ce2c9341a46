# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import csv
import json

import pytest

from jpi import export
from jpi import metrics
from jpi.config import Options
from jpi.session import Session

import jpibuild as build

def decoded():
    enc = build.RecordEncoder()
    records = [enc.encode({0: 100, 15: 180, 20: 140, 23: 95}),
               enc.encode({0: 5, 15: 0}, na=[15]),
               enc.encode({0: 5, 15: 2})]
    return Session(build.jpi_file([(1, records)]), final=True)

def test_json(tmp_path):
    s = decoded()
    fname = str(tmp_path / 'flights.json')
    export.write_json(fname, export.session_to_dict(s))
    with open(fname) as f:
        data = json.load(f)
    assert data['status'] == 'complete'
    assert data['header']['registration'] == 'N12345'
    assert data['header']['total_len'] == s.header.total_len
    assert data['header']['fuel']['unit'] == 0
    flight = data['flights'][0]
    assert flight['header']['id'] == 1
    assert flight['header']['start'] == build.START.isoformat()
    assert len(flight['samples']) == 3
    assert flight['samples'][1]['na'][15]
    assert flight['summary']['max_oil'] == [12.0, 182]
    assert not (tmp_path / 'flights.json.tmp').exists()

def test_load_header(tmp_path):
    s = decoded()
    fname = str(tmp_path / 'flights.json')
    export.write_json(fname, export.session_to_dict(s))
    assert export.load_header(fname) == s.header

def test_csv(tmp_path):
    seq = decoded().flights[0]
    fname = str(tmp_path / 'flight.csv')
    export.write_csv(fname, seq)
    with open(fname, newline='', encoding='utf-8') as f:
        rows = list(csv.reader(f))
    assert rows[0] == ['date', 'EGT1 [°F]', 'OILT [°F]', 'VOLT [V]', 'FF']
    assert rows[1] == [build.START.isoformat(), '100', '180', '14.0', '9.5']
    assert rows[2][2] == ''
    assert rows[3][1:3] == ['110', '182']
    assert len(rows) == 4

def test_failed_write_removes_temp(tmp_path):
    fname = str(tmp_path / 'out.json')
    with pytest.raises(RuntimeError):
        with export.atomic_write(fname) as f:
            f.write('{')
            raise RuntimeError('disk full')
    assert list(tmp_path.iterdir()) == []

def test_json_uses_fuel_density(monkeypatch):
    seen = []
    summary = metrics.summary
    def record(seq, hdr, density=6.0, out_unit=None):
        seen.append(density)
        return summary(seq, hdr, density, out_unit)
    monkeypatch.setattr(metrics, 'summary', record)
    enc = build.RecordEncoder()
    s = Session(build.jpi_file([(1, [enc.encode({23: 95})])]), final=True,
                options=Options(fuel_density=5.5))
    export.session_to_dict(s)
    assert seen == [5.5]

def test_csv_celsius(tmp_path):
    enc = build.RecordEncoder()
    s = Session(build.jpi_file([(1, [enc.encode({0: 100, 14: -5})])]), final=True,
                options=Options(temperature_unit='C'))
    fname = str(tmp_path / 'flight.csv')
    export.write_csv(fname, s.flights[0])
    with open(fname, newline='', encoding='utf-8') as f:
        titles = next(csv.reader(f))
    assert titles == ['date', 'EGT1 [°C]', 'CLD [°C/min]']
