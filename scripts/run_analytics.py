# scripts/run_analytics.py
import sys

from furfolio_analytics.main import main

if __name__ == "__main__":
    sys.exit(main())
