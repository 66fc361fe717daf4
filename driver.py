#!/usr/bin/env python
import argparse
import json
import os
import re
import sys

from src.client.rest_client import RestMediaClient
from src.client.session import EditSession
from src.collection.model import CollectionConfig, PendingItem, PersistedItem
from src.common.errors import CollectionError, SubmitError, TransferError

"""Convenience script for editing a stored collection from the terminal."""

server = os.environ.get("MEDIASTORE_URL", "http://localhost:4400")

def show(session: EditSession):
    collection = session.collection
    if len(collection) == 0:
        print("(empty)")
    for idx, item in enumerate(collection):
        if isinstance(item, PersistedItem):
            print(f"{idx:>3}  stored   {item.identity}  {item.url}")
        elif isinstance(item, PendingItem):
            print(f"{idx:>3}  pending  {item.identity}  {item.content_type}")
    if collection.removed:
        print("removed:", ", ".join(item.identity for item in collection.removed))

def help():
    print("""
ls                              show the collection
a,add <path> [path...]          add files (all or nothing if the batch doesn't fit)
rm <pos>                        remove the item at position
mv <from> <to>                  move an item
submit [json]                   submit, optional json object of extra fields (productName, des)
reload                          discard edits and reload from the server
h,help                          this help
q,quit                          exit""")

def main():
    client = RestMediaClient(server, timeout=args.timeout)
    config = CollectionConfig(max_items=args.max_items)
    session = EditSession(client, args.collection, config=config, max_workers=args.workers)
    session.hydrate()

    tty = sys.stdin.isatty()
    if tty:
        help()
        show(session)

    while True:
        try:
            if tty:
                user_line = input(f"{server}/{args.collection} > ")
            else:
                user_line = input("")
                if user_line != "":
                    ## echo the command if they are being piped in from a script...
                    print("command: " + user_line)
        except EOFError:
            break

        user_split = re.split(r" +", user_line.strip())
        user_input = user_split[0]

        try:
            if user_input in ["ls", "l"]:
                show(session)
            elif user_input in ["add", "a"]:
                for identity in session.add_files(user_split[1:]):
                    print(f"added {identity}")
            elif user_input == "rm":
                session.remove(int(user_split[1]))
                show(session)
            elif user_input == "mv":
                session.reorder(int(user_split[1]), int(user_split[2]))
                show(session)
            elif user_input == "submit":
                metadata = {}
                if len(user_split) > 1:
                    metadata = json.loads(" ".join(user_split[1:]))
                result = session.submit(metadata)
                print(result.message)
                for path in result.file_paths:
                    print("  " + path)
                session.adopt(result)
            elif user_input == "reload":
                session.hydrate()
                show(session)
            elif user_input in ["help", "h"]:
                help()
            elif user_input in ["quit", "q"]:
                break
            elif user_input != "":
                print(f"unknown command {user_input}")
        except (CollectionError, TransferError) as e:
            print(f"{e.kind}: {e}")
        except SubmitError as e:
            print(f"submit failed ({e.status}): {e.message}")
        except (IndexError, ValueError) as e:
            print(f"bad arguments: {e}")

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--collection', type=str, default="default")
    parser.add_argument('--max-items', type=int, default=10)
    parser.add_argument('--workers', type=int, default=None)
    parser.add_argument('--timeout', type=float, default=30)
    args = parser.parse_args()
    main()
