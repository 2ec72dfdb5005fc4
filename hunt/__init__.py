"""hunt — keep a tracked job list free of duplicates and ranked by desirability.

- `normalize.py`, `urls.py`, `similarity.py` build comparison keys.
- `dedup.py` decides whether a candidate posting is already tracked.
- `scorer.py` ranks tracked jobs.
- `tracker.py` is the CSV record store; `agent.py` wires the workflows.
"""

__version__ = "0.3.0"
