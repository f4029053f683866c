"""
Edge daemon package for the DSMR P1 smart meter reader.

Frames telegrams from the meter's P1 serial output, verifies their CRC,
decodes the OBIS-coded data lines into typed pydantic models, and streams
the decoded telegrams to a single consumer.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""
