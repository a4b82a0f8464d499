"""
Flight data parsing module.

Turns flight data service payloads into FlightSnapshot values. Unknown
status strings map to FlightStatus.UNKNOWN and never raise.
"""
