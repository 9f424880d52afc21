"""casauth - client for the CAS single-sign-on ticket validation protocol."""

__version__ = "0.1.0"
