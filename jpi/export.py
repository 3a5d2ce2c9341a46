# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import contextlib
import csv
import dataclasses
import datetime
import enum
import json
import os

import dacite
import numpy as np

from . import base
from . import channels as chmap
from . import metrics
from . import unitconv

@contextlib.contextmanager
def atomic_write(fname, mode='wt'):
    tmp = fname + '.tmp'
    try:
        with open(tmp, mode, encoding='utf-8', newline='') as f:
            yield f
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.remove(tmp)
        raise
    os.replace(tmp, fname)

def _default(obj):
    if isinstance(obj, datetime.datetime):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError('cannot serialize %r' % (obj,))

def header_to_dict(hdr):
    d = dataclasses.asdict(hdr)
    d['total_len'] = hdr.total_len
    return d

def flight_to_dict(seq, file_header=None, density=6.0):
    d = {'header': dataclasses.asdict(seq.header),
         'status': seq.status,
         'duration': seq.duration,
         'samples': [{'timestamp': s.timestamp,
                      'values': list(s.values),
                      'na': list(s.na),
                      'diff': list(s.diff)}
                     for s in seq.samples]}
    if file_header is not None:
        d['summary'] = dataclasses.asdict(metrics.summary(seq, file_header, density))
    return d

def session_to_dict(session):
    return {'header': header_to_dict(session.header) if session.header else None,
            'status': session.status,
            'flights': [flight_to_dict(seq, session.header, session.options.fuel_density)
                        for seq in session.flights]}

def write_json(fname, obj):
    with atomic_write(fname) as f:
        json.dump(obj, f, indent=4, default=_default)

_dacite_config = dacite.Config(cast=[tuple, base.FuelFlowUnit],
                               type_hooks={datetime.datetime: datetime.datetime.fromisoformat})

def load_header(fname):
    """Reload the file header from a JSON export."""
    with open(fname, 'rt', encoding='utf-8') as f:
        data = json.load(f)
    return dacite.from_dict(data_class=base.FileHeader,
                            data=data['header'],
                            config=_dacite_config)

def csv_columns(seq):
    vals = seq.values()
    na = seq.na()
    cols = []
    for idx, name in enumerate(chmap.names(seq.engines)):
        if seq.engines == 1 and idx in (chmap.RPM_LO, chmap.RPM_HI):
            continue
        if np.any(vals[:, idx]) or np.any(na[:, idx]):
            cols.append((name, idx))
    return cols

def write_csv(fname, seq):
    """One row per sample, blank cells where a sensor was not available."""
    vals = seq.values()
    na = seq.na()
    cols = csv_columns(seq)
    rpm = seq.engines == 1 and np.any(vals[:, [chmap.RPM_LO, chmap.RPM_HI]])
    titles = ['date']
    for name, idx in cols:
        units = unitconv.display_text(chmap.units(name, seq.temp_unit)[0])
        titles.append('%s [%s]' % (name, units) if units else name)
    if rpm:
        titles.append('RPM [rpm]')
        rpm_vals = seq.rpm()
    with atomic_write(fname) as f:
        w = csv.writer(f)
        w.writerow(titles)
        for row, sample in enumerate(seq.samples):
            line = [sample.timestamp.isoformat()]
            for name, idx in cols:
                dec_pts = chmap.units(name, seq.temp_unit)[1]
                if na[row, idx]:
                    line.append('')
                elif dec_pts:
                    line.append('%.*f' % (dec_pts, vals[row, idx] / 10 ** dec_pts))
                else:
                    line.append(str(vals[row, idx]))
            if rpm:
                line.append('' if na[row, chmap.RPM_LO] else str(rpm_vals[row]))
            w.writerow(line)
