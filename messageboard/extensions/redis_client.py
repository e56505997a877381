import redis


def build_redis_client(config):
    return redis.Redis.from_url(config["REDIS_URL"], decode_responses=True)
