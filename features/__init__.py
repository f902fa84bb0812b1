"""Feature packages of the SSH certificate authority service."""
