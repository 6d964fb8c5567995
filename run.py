#!/usr/bin/env python3
"""MongoDB S3 backup runner"""
import sys

from mongobackup.cli import main

if __name__ == '__main__':
    # Exit status is the only machine-readable outcome
    sys.exit(main())
