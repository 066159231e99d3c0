"""State layer.

Holds the stage machine, the pure activation policies and the store that
persists activation bookkeeping across launches.
"""
