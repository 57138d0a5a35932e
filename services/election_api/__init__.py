"""Election document API: versioned JSON collections with CAS writes."""

__version__ = '1.0.0'
