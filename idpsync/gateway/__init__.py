"""Gateway REST client (``client``) and timestamp helpers (``timefmt``)."""
