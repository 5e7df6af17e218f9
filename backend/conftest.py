"""Shared test helpers."""

import random


class ScriptedRandom(random.Random):
    """random() returns scripted rolls first, then falls back to the seeded stream"""

    def __init__(self, rolls=(), seed=0):
        super().__init__(seed)
        self.rolls = list(rolls)

    def random(self):
        if self.rolls:
            return self.rolls.pop(0)
        return super().random()

    def getrandbits(self, k):
        # keeps randint/choice on the seeded stream instead of the scripted rolls
        return super().getrandbits(k)
