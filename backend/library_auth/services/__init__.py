"""Service layer: the auth protocol and the ports it depends on."""
