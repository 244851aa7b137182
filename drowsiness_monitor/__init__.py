"""
Drowsy Driver Monitor

This package contains all modules for eye-closure based drowsiness detection:
- Eye-openness scoring
- Bounding-box geometry
- Drowsiness state machine
- Frame analysis (face and eye-pair detection)
- Processing loop
- Visualization and audible alerts
"""

__version__ = "1.0.0"
