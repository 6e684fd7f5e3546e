"""
Real-Time Orbital Position Engine

Propagates a catalog of two-line element sets to a wall-clock instant and
delivers geodetic positions with visibility flags through a worker thread.

Modules:
    tle_parser: TLE parsing and the element record cache
    sgp4_propagator: Native SGP4/SDP4 implementation
    propagator: Native and sgp4-library propagation backends
    frames: TEME to Earth-fixed to WGS-84 geodetic transforms
    visibility: Observer visibility classification
    engine: Batch pass over a catalog
    messages: Request and reply messages
    worker: Worker thread and tick scheduler

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

__version__ = "1.0.0"
