"""Example demonstrating a tailbus channel over NATS JetStream."""

import asyncio

from tailbus import ChannelOptions, ConnectionFactory, NATSStoreConfig


async def main():
    """Publish a few events on a capped channel and print them as they arrive."""
    config = NATSStoreConfig(servers=["nats://localhost:4222"])
    connection = await ConnectionFactory.create_nats(config)

    try:
        # At most three records are kept; older ones are evicted
        channel = connection.channel("test1", ChannelOptions(max_count=3))

        channel.subscribe("baz", lambda message: print(f"  baz: {message}"))
        channel.subscribe(lambda message: print(f"  any event: {message}"))
        channel.subscribe("error", lambda error: print(f"  error: {error}"))

        await channel.ready()
        print(f"✅ Tailing channel '{channel.name}' after record {channel.last_seen_id}")

        print("\n📝 Publishing:")
        for text in ("hello", "world"):
            record = await channel.publish("baz", text)
            print(f"  published #{record.id}")

        await asyncio.sleep(1)

        print("\n📊 Metrics:")
        for name, value in connection.metrics.get_all()["counters"].items():
            print(f"  {name}: {value}")
    finally:
        await connection.shutdown()
        await connection.store.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
