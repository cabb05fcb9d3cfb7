#!/usr/bin/env python3
"""Entry point for the Catpoint security system."""

import sys

from catpoint_security.app import main

if __name__ == "__main__":
    sys.exit(main())
