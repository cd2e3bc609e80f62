"""Session authentication: token issuance, verification and rotation."""
