"""
gen_paths.py - Output roots shared by the asset tools.
"""

GEN_ROOT = "gen"
ANALYSIS_ROOT = "debug"
