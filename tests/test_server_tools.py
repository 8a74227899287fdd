import base64

import pytest
from cryptography.hazmat.primitives import hashes
from fastmcp import Client

from _util import SHA1_CERT, cert_pem, make_ca_and_leaf, make_p12, read_bytes


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.mark.asyncio
async def test_server_name_and_tools():
    from certhygiene.server import mcp

    assert getattr(mcp, "name", "") == "CertHygiene"
    async with Client(mcp) as client:
        names = {t.name for t in await client.list_tools()}
    assert {"inspect_from_local_path", "inspect_from_b64_string"} <= names


@pytest.mark.asyncio
async def test_inspect_from_local_path_with_ca(tmp_path):
    ca, leaf = make_ca_and_leaf()
    (tmp_path / "leaf.pem").write_bytes(cert_pem(leaf))
    (tmp_path / "ca.pem").write_bytes(cert_pem(ca))
    from certhygiene.server import mcp
    async with Client(mcp) as client:
        res = await client.call_tool("inspect_from_local_path", {
            "path": str(tmp_path / "leaf.pem"), "ca_path": str(tmp_path / "ca.pem"),
        })
    data = res.data
    assert data["ok"] is True
    (section,) = data["sections"]
    assert section["kind"] == "certificate"
    assert section["summary"]["chain_verification"] == "OK"


@pytest.mark.asyncio
async def test_inspect_from_b64_p12_wrong_password():
    from certhygiene.server import mcp
    async with Client(mcp) as client:
        res = await client.call_tool("inspect_from_b64_string", {
            "filename": "bundle.p12",
            "content_b64": b64(make_p12(mac=hashes.SHA1())),
            "password": "wrongpass",
        })
    data = res.data
    assert data["ok"] is False
    section = data["sections"][0]
    assert section["summary"]["mac_algorithm"] == "sha1"
    assert [f["rule"] for f in section["findings"]] == ["weak_mac"]
    assert section["error"].startswith("AuthenticationFailed")


@pytest.mark.asyncio
async def test_inspect_from_b64_pem():
    from certhygiene.server import mcp
    async with Client(mcp) as client:
        res = await client.call_tool("inspect_from_b64_string", {
            "filename": "leaf.pem", "content_b64": b64(read_bytes(SHA1_CERT)),
        })
    findings = res.data["sections"][0]["findings"]
    assert findings[0]["rule"] == "weak_algorithm"
    assert findings[0]["severity"] == "warning"


@pytest.mark.asyncio
async def test_errors_are_returned_not_raised(tmp_path):
    from certhygiene.server import mcp
    async with Client(mcp) as client:
        missing = (await client.call_tool("inspect_from_local_path", {"path": str(tmp_path / "nope.pem")})).data
        bad_b64 = (await client.call_tool("inspect_from_b64_string", {"filename": "a.pem", "content_b64": "@@@"})).data
        unknown = (await client.call_tool("inspect_from_b64_string", {"filename": "a.txt", "content_b64": b64(b"x")})).data
    assert missing["error"].startswith("UsageError")
    assert bad_b64["error"].startswith("UsageError")
    assert unknown["error"].startswith("UnrecognizedFormat")
