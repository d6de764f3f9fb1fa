"""groot: command-line interface for libgroot repositories."""
