from __future__ import annotations

import asyncio

import pytest

from probe import ProbeClient, ProbeError
from shared.protocol import ErrorCode, FieldRuleDecoder, OpcodeRule, build_request
from simulator.core import ResponsePipeline, ResponseResolver, SimulatorServer

RULES = [
    OpcodeRule(field_index=2, expected_value="B0000", opcode="GIS"),
    OpcodeRule(field_index=2, expected_value="B0001", opcode="BAL"),
]


async def _start(mapping, delay=0.05, **kwargs) -> SimulatorServer:
    pipeline = ResponsePipeline(FieldRuleDecoder(RULES), ResponseResolver(mapping))
    server = SimulatorServer("127.0.0.1", 0, pipeline, response_delay=delay, **kwargs)
    await server.start()
    return server


def test_hello_scenario_bytes():
    async def scenario():
        server = await _start({"GIS": "Hello"})
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            writer.write(b"\x00\x0b" + b"xx\x1cyy\x1cB0000")
            await writer.drain()
            reply = await asyncio.wait_for(reader.readexactly(7), timeout=2)
            writer.close()
            await writer.wait_closed()
            return reply
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == b"\x00\x05Hello"


def test_reply_is_delayed_from_receipt():
    async def scenario():
        server = await _start({"GIS": "Hello"}, delay=0.2)
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                loop = asyncio.get_running_loop()
                started = loop.time()
                reply = await client.request(["xx", "yy", "B0000"])
                return reply, loop.time() - started
        finally:
            await server.stop()

    reply, elapsed = asyncio.run(scenario())
    assert reply == "Hello"
    assert elapsed >= 0.15


def test_unrecognized_frame_gets_no_reply_and_connection_stays_open():
    async def scenario():
        server = await _start({"GIS": "Hello"})
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                await client.send_fields(["xx", "yy", "B9999"])
                with pytest.raises(ProbeError) as excinfo:
                    await client.receive_reply(timeout=0.3)
                assert excinfo.value.code is ErrorCode.TIMEOUT
                assert server.connection_count == 1
                return await client.request(["xx", "yy", "B0000"])
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == "Hello"


def test_tokens_arrive_as_control_bytes():
    async def scenario():
        server = await _start({"GIS": "22<FS><GS>OK"})
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            writer.write(build_request(["xx", "yy", "B0000"]))
            await writer.drain()
            reply = await asyncio.wait_for(reader.readexactly(8), timeout=2)
            writer.close()
            await writer.wait_closed()
            return reply
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == b"\x00\x06" + b"22\x1c\x1dOK"


def test_client_restores_tokens():
    async def scenario():
        server = await _start({"GIS": "a<FS>b<GS>c"})
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                return await client.request(["xx", "yy", "B0000"])
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == "a<FS>b<GS>c"


def test_concurrent_connections_are_independent():
    async def scenario():
        server = await _start({"GIS": "first", "BAL": "second"}, delay=0.3)
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as a, ProbeClient(
                "127.0.0.1", server.bound_port, timeout=2
            ) as b:
                loop = asyncio.get_running_loop()
                started = loop.time()
                replies = await asyncio.gather(
                    a.request(["xx", "yy", "B0000"]),
                    b.request(["xx", "yy", "B0001"]),
                )
                return replies, loop.time() - started
        finally:
            await server.stop()

    replies, elapsed = asyncio.run(scenario())
    assert replies == ["first", "second"]
    assert elapsed < 0.55


def test_replies_keep_receipt_order_on_one_connection():
    async def scenario():
        server = await _start({"GIS": "one", "BAL": "two"}, delay=0.1)
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                await client.send_fields(["xx", "yy", "B0000"])
                await asyncio.sleep(0.05)
                await client.send_fields(["xx", "yy", "B0001"])
                return [await client.receive_reply(), await client.receive_reply()]
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == ["one", "two"]


def test_pending_write_is_abandoned_when_client_leaves():
    async def scenario():
        server = await _start({"GIS": "Hello"}, delay=0.2)
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            writer.write(build_request(["xx", "yy", "B0000"]))
            await writer.drain()
            writer.close()
            await writer.wait_closed()
            await asyncio.sleep(0.4)
            assert server.connection_count == 0
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                return await client.request(["xx", "yy", "B0000"])
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == "Hello"


def test_oversized_response_is_not_sent():
    async def scenario():
        server = await _start({"GIS": "x" * 70000, "BAL": "small"})
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as client:
                await client.send_fields(["xx", "yy", "B0000"])
                with pytest.raises(ProbeError):
                    await client.receive_reply(timeout=0.3)
                return await client.request(["xx", "yy", "B0001"])
        finally:
            await server.stop()

    assert asyncio.run(scenario()) == "small"


def test_connection_limit():
    async def scenario():
        server = await _start({"GIS": "Hello"}, max_connections=1)
        try:
            async with ProbeClient("127.0.0.1", server.bound_port, timeout=2) as first:
                await asyncio.sleep(0.05)
                reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
                rejected = await asyncio.wait_for(reader.read(1), timeout=2)
                writer.close()
                reply = await first.request(["xx", "yy", "B0000"])
                return rejected, reply
        finally:
            await server.stop()

    rejected, reply = asyncio.run(scenario())
    assert rejected == b""
    assert reply == "Hello"


def test_stop_closes_open_connections():
    async def scenario():
        server = await _start({"GIS": "Hello"}, delay=5)
        reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
        writer.write(build_request(["xx", "yy", "B0000"]))
        await writer.drain()
        await asyncio.sleep(0.05)
        await server.stop()
        data = await asyncio.wait_for(reader.read(), timeout=2)
        writer.close()
        return data, server.connection_count

    assert asyncio.run(scenario()) == (b"", 0)


def test_client_connect_failure():
    async def scenario():
        server = await _start({})
        port = server.bound_port
        await server.stop()
        client = ProbeClient("127.0.0.1", port, timeout=1)
        with pytest.raises(ProbeError) as excinfo:
            await client.connect()
        return excinfo.value.code

    assert asyncio.run(scenario()) is ErrorCode.CONNECTION_FAILED
