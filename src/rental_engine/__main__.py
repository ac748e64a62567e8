"""Run the engine CLI with ``python -m rental_engine``."""

from rental_engine.app import main

if __name__ == "__main__":
    raise SystemExit(main())
