import os

# Charts are written to files only
os.environ.setdefault("MPLBACKEND", "Agg")
