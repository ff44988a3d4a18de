# File: infrastructure/redis/redis_client.py

from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.asyncio.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisError

from keysweep.common.config.settings import Settings
from keysweep.common.exceptions.base_exception import ServiceUnavailableException, TopologyException
from keysweep.common.logging.logger import ContextLogger, default_logger
from keysweep.domain.keyspace.entities.shard_entity import Shard


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` into its parts, rejecting anything else."""
    parts = address.strip().split(":")
    if len(parts) != 2 or not parts[0]:
        raise TopologyException(f"Invalid Redis address: {address!r}")
    try:
        port = int(parts[1])
    except ValueError:
        raise TopologyException(f"Invalid Redis address: {address!r}") from None
    if not 0 < port < 65536:
        raise TopologyException(f"Invalid Redis port: {address!r}")
    return parts[0], port


def _node_client(config: Settings, host: str, port: int, db: int = 0) -> Redis:
    return Redis(
        host=host,
        port=port,
        db=db,
        password=config.REDIS_PASSWORD or None,
        max_connections=config.REDIS_POOL_SIZE,
        socket_connect_timeout=config.REDIS_CONNECT_TIMEOUT,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )


class Topology:
    """Resolved set of shards plus the clients that back them."""

    def __init__(self, shards: List[Shard], cluster: Optional[RedisCluster] = None,
                 log: Optional[ContextLogger] = None):
        if not shards:
            raise TopologyException()
        self.shards = shards
        self.cluster = cluster
        self.log = log or default_logger
        self._closed = False

    async def close(self):
        """Close every shard client and the discovery client. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        for shard in self.shards:
            try:
                await shard.client.aclose()
            except (RedisError, OSError) as e:
                self.log.error("Redis client close failed", extra={"shard": shard.identity, "error": str(e)})
        if self.cluster is not None:
            try:
                await self.cluster.aclose()
            except (RedisError, OSError) as e:
                self.log.error("Redis cluster client close failed", extra={"error": str(e)})
        self.log.info("Redis connections closed", extra={"shards": [s.identity for s in self.shards]})


async def connect_single(config: Settings, log: Optional[ContextLogger] = None) -> Topology:
    """Connect to one standalone instance and ping it."""
    log = log or default_logger
    nodes = config.node_list
    if len(nodes) != 1:
        raise TopologyException(f"Standalone mode expects exactly one address, got {len(nodes)}")
    host, port = parse_address(nodes[0])

    client = _node_client(config, host, port, db=config.REDIS_DB)
    identity = f"{host}:{port}"
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        log.error("Redis connection failed", extra={"shard": identity, "error": str(e)}, exc_info=True)
        await client.aclose()
        raise ServiceUnavailableException(f"Redis at {identity} unavailable") from e

    log.info("Redis connection established", extra={"shard": identity, "db": config.REDIS_DB})
    return Topology([Shard(identity=identity, client=client)], log=log)


async def connect_cluster(config: Settings, log: Optional[ContextLogger] = None) -> Topology:
    """Discover the cluster's primaries and open one direct client per primary."""
    log = log or default_logger
    nodes = config.node_list
    if not nodes:
        raise TopologyException("No cluster seed nodes provided")
    startup_nodes = [ClusterNode(*parse_address(node)) for node in nodes]

    cluster = RedisCluster(
        startup_nodes=startup_nodes,
        password=config.REDIS_PASSWORD or None,
        cluster_error_retry_attempts=config.REDIS_CLUSTER_RETRY_ATTEMPTS,
        socket_connect_timeout=config.REDIS_CONNECT_TIMEOUT,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )
    try:
        await cluster.initialize()
    except (RedisError, OSError) as e:
        log.error("Redis cluster discovery failed", extra={"nodes": nodes, "error": str(e)}, exc_info=True)
        await cluster.aclose()
        raise TopologyException(f"Cluster discovery failed: {e}") from e

    shards = [
        Shard(identity=node.name, client=_node_client(config, node.host, node.port))
        for node in cluster.get_primaries()
    ]
    if not shards:
        await cluster.aclose()
        raise TopologyException("Cluster reported no primaries")
    return await health_check(shards, cluster, log)


async def health_check(shards: List[Shard], cluster: Optional[RedisCluster], log: ContextLogger) -> Topology:
    reachable = 0
    for shard in shards:
        try:
            await shard.client.ping()
            reachable += 1
        except (RedisError, OSError) as e:
            log.error("Redis shard ping failed", extra={"shard": shard.identity, "error": str(e)})

    topology = Topology(shards, cluster=cluster, log=log)
    if not reachable:
        await topology.close()
        raise TopologyException("None of the cluster primaries answered PING")

    log.info("Redis cluster resolved", extra={
        "primaries": [shard.identity for shard in shards],
        "reachable": reachable,
    })
    return topology


async def connect(config: Settings, log: Optional[ContextLogger] = None) -> Topology:
    if config.REDIS_CLUSTER:
        return await connect_cluster(config, log)
    return await connect_single(config, log)
