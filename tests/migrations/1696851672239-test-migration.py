"""Inserts one document into the "test" collection after a random delay."""

import os
import random
import time

from pymongo import MongoClient

description = "records a single side effect"


def up():
    time.sleep(random.uniform(0, 0.5))
    client = MongoClient(os.environ["MONGODB_TEST_URI"])
    try:
        client.get_default_database()["test"].insert_one({})
    finally:
        client.close()


def down():
    pass
