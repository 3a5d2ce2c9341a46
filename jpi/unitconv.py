# Copyright 2024, Scott Smith.  MIT License (see LICENSE).


# Using something like pint would be total overkill.  Instead, basic
# list of units and conversions for what engine monitors record.

from dataclasses import dataclass, field

import numpy as np


@dataclass
class Unit:
    name: str
    symbol: str
    scale: float = 1 # X base units = Y this_units.  Y = X * scale + offset
    offset: float = 0 #                              X = (Y - offset) / scale
    aliases: list[str] = field(default_factory=list)
    display: str = '' # usually symbol unless special unicode characters


@dataclass
class UnitProperty:
    name: str
    units: list[Unit]

properties = [
    UnitProperty('Temperature',
                 [Unit('kelvin', 'K'),
                  Unit('celsius', 'C', offset=-273.15, display='°C'),
                  Unit('fahrenheit', 'F', 1.8, -459.67, display='°F')]),
    UnitProperty('Temperature rate',
                 [Unit('kelvin/min', 'K/min'),
                  Unit('fahrenheit/min', 'F/min', 1.8, display='°F/min'),
                  Unit('celsius/min', 'C/min', display='°C/min')]),
    UnitProperty('Volume',
                 [Unit('cubic meter', 'm^3', display='m³'),
                  Unit('liter', 'l', 1000, aliases=['liters', 'L']),
                  Unit('US gallon', 'USgal', 264.172052, aliases=['gal', 'gallons'])]),
    UnitProperty('Mass',
                 [Unit('kilogram', 'kg', aliases=['kgs']),
                  Unit('pound', 'lb', 2.20462262, aliases=['lbs'])]),
    UnitProperty('Volume flow',
                 [Unit('liter/hour', 'l/h', aliases=['lph']),
                  Unit('US gallon/hour', 'USgal/h', 1 / 3.785411784, aliases=['gph'])]),
    UnitProperty('Mass flow',
                 [Unit('kilogram/hour', 'kg/h', aliases=['kph']),
                  Unit('pound/hour', 'lb/h', 2.20462262, aliases=['pph'])]),
    UnitProperty('Pressure',
                 [Unit('pascal', 'Pa'),
                  Unit('kilopascal', 'kPa', 1e-3),
                  Unit('PSI', 'psi', 0.0001450377),
                  Unit('inch of mercury', 'inHg', 0.000295299830714)]),
    UnitProperty('Ratio',
                 [Unit('ratio', 'ratio'),
                  Unit('percent', '%', 100)]),
    UnitProperty('Voltage',
                 [Unit('volt', 'V', aliases=['volts']),
                  Unit('millivolt', 'mV', 1000)]),
    UnitProperty('Angular velocity',
                 [Unit('rev/min', 'rpm', aliases=['revs/min'])]),
]

unit_map = {name.lower(): (prop, unit)
            for prop in properties
            for unit in prop.units
            for name in [unit.name, unit.symbol] + unit.aliases}

def convert(values, from_unit, to_unit):
    # Do this check before looking up in unit_map in case we don't know these units
    if to_unit.lower() == from_unit.lower():
        return values
    try:
        old_unit = unit_map[from_unit.lower()]
        new_unit = unit_map[to_unit.lower()]
    except KeyError:
        return None
    if old_unit[0] != new_unit[0]: # Are they the same property
        return None
    if old_unit[1] == new_unit[1]: # maybe they're aliases, but not the same text string
        return values
    return (np.subtract(values, old_unit[1].offset) * (new_unit[1].scale / old_unit[1].scale)
            + new_unit[1].offset)

def property_of(unit):
    try:
        return unit_map[unit.lower()][0].name
    except (KeyError, AttributeError):
        return None

def display_text(unit):
    try:
        entry = unit_map[unit.lower()][1]
        return entry.display or entry.symbol
    except (KeyError, AttributeError):
        return unit
