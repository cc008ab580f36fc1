"""
Subpackage for reading and normalising raw issue data.

`loader` parses delimited files into `Record` objects and `utils`
provides the text normalisation and n-gram helpers used by the
featurizer.
"""

from .loader import Record, load_records, read_records, records_to_frame

__all__ = [
    "Record",
    "load_records",
    "read_records",
    "records_to_frame",
    "loader",
    "utils",
]
