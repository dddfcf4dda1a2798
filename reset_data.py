"""
reset_data.py
-------------
Utility script to clear all stored data (users, products, rentals, notifications)
from the local data file.

Usage:
    $ python reset_data.py

After running this script, you can repopulate sample data by executing:
    $ python seeds.py
"""

from rentalhub.config import Config
from rentalhub.models.store import Store


def main():
    """Clear every table of the persistent store and save the empty store back to disk."""
    store = Store.instance(Config.DATA_PATH or None)
    store.clear()

    print(f"{store.path or 'in-memory store'} has been cleared.")
    print("Tip: Run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()
