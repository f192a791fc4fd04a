"""
Material models.

Provides:
- ElasticType: the three equivalent isotropic parameterizations
- ElasticProperties: fully converted property set
- convert / convert_mapping: conversion entry points
"""

from .elastic import (
    ElasticType,
    ElasticProperties,
    convert,
    convert_mapping,
    lame_from_young,
    young_from_lame,
    velocities_from_lame,
    lame_from_velocities,
)
