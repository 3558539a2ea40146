"""Domain services: input validation and the credential store gateway."""
