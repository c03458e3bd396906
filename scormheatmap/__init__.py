"""
SCORM interaction heatmap: rebuilds per-question statistics from flat CMI
tracking records.
"""

__version__ = "0.1.0"
