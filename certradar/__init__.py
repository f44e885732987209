"""SSL/TLS, DNS and CAA security analysis: lookups, probes, rules and report rendering."""

__version__ = "0.1.2"