# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Layout of the 48 channel slots carried by every sample record.  Slots
# 24-47 hold the right engine on twin installations and the extra
# cylinders (7-9) plus MAP/RPM on singles.

NUM_CHANNELS = 48

MARK = 16
RPM_LO = 41
RPM_HI = 42 # only a separate high byte on single engine installs

TWIN_MODELS = (760, 960)

_single = (['EGT%d' % i for i in range(1, 7)] +
           ['TIT1', 'TIT2'] +
           ['CHT%d' % i for i in range(1, 7)] +
           ['CLD', 'OILT', 'MARK', 'OILP', 'CRB', 'IAT', 'VOLT', 'OAT', 'USD', 'FF'] +
           ['EGT%d' % i for i in range(7, 13)] +
           ['HP', 'UNK31'] +
           ['CHT%d' % i for i in range(7, 13)] +
           ['UNK38', 'UNK39', 'MAP', 'RPM', 'RPMHI'] +
           ['UNK%d' % i for i in range(43, 48)])

_twin = _single[:24] + ['R' + name for name in _single[:24]]

assert len(_single) == NUM_CHANNELS
assert len(_twin) == NUM_CHANNELS

# per engine, in cylinder order
_egt_channels = {
    1: ((0, 1, 2, 3, 4, 5, 24, 25, 26),),
    2: ((0, 1, 2, 3, 4, 5), (24, 25, 26, 27, 28, 29)),
}

_cht_channels = {
    1: ((8, 9, 10, 11, 12, 13, 32, 33, 34),),
    2: ((8, 9, 10, 11, 12, 13), (32, 33, 34, 35, 36, 37)),
}

# name stem -> (units, dec_pts).  Values are stored as integers scaled by
# 10 ** dec_pts.
_units = {
    'EGT': ('F', 0),
    'TIT': ('F', 0),
    'CHT': ('F', 0),
    'CLD': ('F/min', 0),
    'OILT': ('F', 0),
    'OILP': ('psi', 0),
    'CRB': ('F', 0),
    'IAT': ('F', 0),
    'OAT': ('F', 0),
    'VOLT': ('V', 1),
    'USD': ('', 1),
    'FF': ('', 1),
    'HP': ('%', 0),
    'MAP': ('inHg', 1),
    'RPM': ('rpm', 0),
}

def num_engines(model):
    return 2 if model in TWIN_MODELS else 1

def names(engines=1):
    return _twin if engines == 2 else _single

def index(name, engines=1):
    return names(engines).index(name)

def egt_channels(engines, num_cylinders):
    if engines > 1 and num_cylinders > 6:
        return ()
    return tuple(chans[:num_cylinders] for chans in _egt_channels[engines])

def cht_channels(engines, num_cylinders):
    if engines > 1 and num_cylinders > 6:
        return ()
    return tuple(chans[:num_cylinders] for chans in _cht_channels[engines])

def units(name, temp_unit='F'):
    """(units, dec_pts) for a channel.  temp_unit is the unit the monitor
    was set to record temperatures in."""
    stem = name.rstrip('0123456789')
    if stem not in _units and stem.startswith('R'): # right engine
        stem = stem[1:]
    unit, dec_pts = _units.get(stem, ('', 0))
    if unit in ('F', 'F/min'):
        unit = temp_unit + unit[1:]
    return unit, dec_pts
