# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import typing

@dataclass
class Options:
    header_prefetch: int = 2000 # bytes to buffer before reading a streamed header
    reuse_masks: bool = True # absent mask bytes repeat the previous record's
    checksum_includes_star: bool = False
    headers_only: bool = False
    fuel_density: float = 6.0 # lb per US gallon, avgas
    engines: typing.Optional[int] = None # None: derive from the model number
    temperature_unit: str = 'F' # F or C, as set on the monitor

    @classmethod
    def from_config(cls, config, section='jpi'):
        """Read options from a configparser section, keeping defaults for
        anything missing."""
        default = cls()
        if not config.has_section(section):
            return default
        engines = config.get(section, 'engines', fallback='')
        return cls(
            header_prefetch=config.getint(section, 'header_prefetch',
                                          fallback=default.header_prefetch),
            reuse_masks=config.getboolean(section, 'reuse_masks',
                                          fallback=default.reuse_masks),
            checksum_includes_star=config.getboolean(section, 'checksum_includes_star',
                                                     fallback=default.checksum_includes_star),
            headers_only=config.getboolean(section, 'headers_only',
                                           fallback=default.headers_only),
            fuel_density=config.getfloat(section, 'fuel_density',
                                         fallback=default.fuel_density),
            engines=int(engines) if engines else None,
            temperature_unit=config.get(section, 'temperature_unit',
                                        fallback=default.temperature_unit))
