#!/usr/bin/env python3
"""
Simple demo of a logkv store.

This demonstrates writes, replay after reopening, and index snapshots.
"""

import tempfile
from pathlib import Path

from logkv import KeyState, KVStore
from logkv.utils.logging import configure_logging


def main():
    configure_logging(log_level="INFO", log_format="console")
    
    print("=" * 60)
    print("logkv - Simple Store Demo")
    print("=" * 60)
    
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "demo.log"
        
        print("\n[1] Writing records...")
        with KVStore.open(path) as store:
            store.load()
            for i in range(5):
                offset = store.insert(f"city-{i}".encode(), f"population {i * 1000}".encode())
                print(f"  Wrote city-{i} at offset {offset}")
            store.update(b"city-0", b"population 500")
            store.delete(b"city-4")
        
        print("\n[2] Reopening and replaying the log...")
        with KVStore.open(path) as store:
            replayed = store.load()
            print(f"  Replayed {replayed} records into {len(store.index)} keys")
            
            for key in (b"city-0", b"city-4", b"city-9"):
                result = store.lookup(key)
                if result.state is KeyState.PRESENT:
                    print(f"  {key.decode()}: {result.value.decode()}")
                else:
                    print(f"  {key.decode()}: {result.state.value}")
            
            print("\n[3] Snapshotting the index...")
            offset = store.snapshot_index()
            snapshot = store.read_index_snapshot()
            print(f"  Snapshot at offset {offset} holds {len(snapshot)} keys")
            
            store.load()
            found = store.find(b"city-0")
            print(f"  Full scan finds city-0 at offset {found[0]}: {found[1].decode()}")


if __name__ == "__main__":
    main()
