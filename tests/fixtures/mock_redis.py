import redis


class MockRedisClient:
    def __init__(self, fail_writes: int = 0):
        self.store = {}
        # number of set() calls that raise a ConnectionError before succeeding
        self.fail_writes = fail_writes
        self.set_calls = 0

    def get(self, k):
        return self.store.get(k)

    def set(self, k, v, ex=None):
        self.set_calls += 1
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise redis.exceptions.ConnectionError('connection reset')
        self.store[k] = v

    def delete(self, k):
        self.store.pop(k, None)

    def ping(self):
        return True

    def exists(self, k):
        return 1 if k in self.store else 0

    def flushall(self):
        self.store.clear()
