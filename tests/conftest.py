"""Shared fixtures: canned MAAS payloads and an in-memory MAAS API.

``FakeMAAS`` answers requests through ``httpx.MockTransport`` so tests can
drive the real client stack end to end without network access.
"""

import itertools
import json
from urllib.parse import parse_qs

import httpx
import pytest

from maas_client import ClientConfig, ClientSet

ENDPOINT = "http://maas.test:5240/MAAS"
API_KEY = "consumer-key:token-key:token-secret"
API_PREFIX = "/MAAS/api/2.0/"

# Number of polls a deploying machine reports "Deploying" before "Deployed".
DEPLOY_POLLS = 2


def machine_json(system_id: str, **overrides) -> dict:
    """Return a MAAS machine payload with sensible defaults."""
    data = {
        "system_id": system_id,
        "hostname": f"host-{system_id}",
        "fqdn": f"host-{system_id}.maas",
        "resource_uri": f"{API_PREFIX}machines/{system_id}/",
        "status_name": "Ready",
        "status_message": None,
        "power_state": "off",
        "zone": {"id": 1, "name": "default", "description": ""},
        "pool": {"id": 0, "name": "default", "description": ""},
        "ip_addresses": [],
        "osystem": "",
        "distro_series": "",
        "swap_size": None,
        "architecture": "amd64/generic",
        "cpu_count": 8,
        "memory": 16384,
        "tag_names": ["virtual"],
        "status": 4,
        "boot_interface": {"mac_address": "52:54:00:12:34:56"},
    }
    data.update(overrides)
    return data


def _json_response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def _text_response(status_code: int, text: str) -> httpx.Response:
    return httpx.Response(status_code, text=text)


class FakeMAAS:
    """Minimal in-memory MAAS implementing the endpoints the client uses."""

    def __init__(self):
        self.machines: dict[str, dict] = {}
        self.dns_resources: dict[int, dict] = {}
        self.zones = [
            {"id": 1, "name": "default", "description": ""},
            {"id": 2, "name": "az1", "description": "rack 1"},
            {"id": 3, "name": "az2", "description": "rack 2"},
        ]
        self.requests: list[httpx.Request] = []
        # Deployments poll as Deploying this many times, then as deploy_outcome.
        self.deploy_polls = DEPLOY_POLLS
        self.deploy_outcome = "Deployed"
        self._deploy_polls: dict[str, int] = {}
        self._dns_ids = itertools.count(1)

    def add_machine(self, system_id: str, **overrides) -> dict:
        zone = overrides.pop("zone", None)
        data = machine_json(system_id, **overrides)
        if zone is not None:
            data["zone"] = next(z for z in self.zones if z["name"] == zone)
        self.machines[system_id] = data
        return data

    def add_dns_resource(self, fqdn: str, ips: list[str], ttl: int | None = None):
        resource_id = next(self._dns_ids)
        data = {
            "id": resource_id,
            "fqdn": fqdn,
            "address_ttl": ttl,
            "ip_addresses": [{"id": n, "ip": ip} for n, ip in enumerate(ips)],
            "resource_records": [],
            "resource_uri": f"{API_PREFIX}dnsresources/{resource_id}/",
        }
        self.dns_resources[resource_id] = data
        return data

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not request.headers.get("Authorization", "").startswith("OAuth "):
            return _text_response(401, "Authorization required")

        path = request.url.path
        assert path.startswith(API_PREFIX), path
        parts = [p for p in path[len(API_PREFIX) :].split("/") if p]
        form = {
            key: values[0]
            for key, values in parse_qs(request.read().decode()).items()
        }
        op = request.url.params.get("op")

        if parts[0] == "machines":
            return self._machines(request.method, parts[1:], op, form, request)
        if parts[0] == "dnsresources":
            return self._dns(request.method, parts[1:], form, request)
        if parts[0] == "zones" and request.method == "GET":
            return _json_response(200, self.zones)
        return _text_response(404, "Not Found")

    # -- machines -----------------------------------------------------------

    def _machines(self, method, parts, op, form, request) -> httpx.Response:
        if not parts:
            if method == "GET":
                hostname = request.url.params.get("hostname")
                machines = [
                    m
                    for m in self.machines.values()
                    if hostname is None or m["hostname"] == hostname
                ]
                return _json_response(200, machines)
            if method == "POST" and op == "allocate":
                return self._allocate(form)
            return _text_response(400, "Unrecognised signature")

        system_id = parts[0]
        machine = self.machines.get(system_id)
        if machine is None:
            return _text_response(404, "No Machine matches the given query.")

        if method == "GET":
            return _json_response(200, self._poll(machine))
        if method == "PUT":
            return self._update(machine, form)
        if method == "POST":
            return self._machine_op(machine, op, form)
        return _text_response(405, "Method not allowed")

    def _allocate(self, form) -> httpx.Response:
        zone = form.get("zone")
        if zone is not None and zone not in {z["name"] for z in self.zones}:
            return _json_response(400, {"zone": [f"No such zone: '{zone}'."]})
        for machine in self.machines.values():
            if machine["status_name"] != "Ready":
                continue
            if "system_id" in form and machine["system_id"] != form["system_id"]:
                continue
            if zone is not None and machine["zone"]["name"] != zone:
                continue
            machine["status_name"] = "Allocated"
            return _json_response(200, machine)
        return _text_response(
            409,
            "No available machine matching constraints: "
            + json.dumps(form, sort_keys=True),
        )

    def _poll(self, machine) -> dict:
        system_id = machine["system_id"]
        if machine["status_name"] == "Deploying":
            remaining = self._deploy_polls.get(system_id, 0)
            if remaining <= 0:
                machine["status_name"] = self.deploy_outcome
                machine["power_state"] = (
                    "on" if self.deploy_outcome == "Deployed" else "off"
                )
            else:
                self._deploy_polls[system_id] = remaining - 1
        return machine

    def _update(self, machine, form) -> httpx.Response:
        if "swap_size" in form:
            swap_size = int(form["swap_size"])
            if swap_size < 0:
                return _json_response(
                    400,
                    {"swap_size": ["Ensure this value is greater than or equal to 0."]},
                )
            machine["swap_size"] = swap_size
        for key in ("hostname", "description"):
            if key in form:
                machine[key] = form[key]
        return _json_response(200, machine)

    def _machine_op(self, machine, op, form) -> httpx.Response:
        state = machine["status_name"]
        if op == "deploy":
            if state != "Allocated":
                return _text_response(
                    409,
                    f"Can't deploy a machine in the '{state}' state.",
                )
            machine["status_name"] = "Deploying"
            machine["osystem"] = form.get("osystem", "ubuntu")
            machine["distro_series"] = form.get("distro_series", "jammy")
            machine["ephemeral_deploy"] = form.get("ephemeral_deploy") == "true"
            self._deploy_polls[machine["system_id"]] = self.deploy_polls
            return _json_response(200, machine)
        if op == "release":
            if state in ("Ready", "New"):
                return _text_response(
                    409,
                    f"Machine cannot be released in its current state ('{state}').",
                )
            machine.update(
                status_name="Ready",
                osystem="",
                distro_series="",
                power_state="off",
                release_comment=form.get("comment"),
            )
            return _json_response(200, machine)
        if op == "power_on":
            machine["power_state"] = "on"
            return _json_response(200, machine)
        if op == "power_off":
            machine["power_state"] = "off"
            return _json_response(200, machine)
        return _text_response(400, f"Unrecognised signature: method=POST op={op}")

    # -- DNS resources ------------------------------------------------------

    def _dns(self, method, parts, form, request) -> httpx.Response:
        if not parts:
            if method == "GET":
                fqdn = request.url.params.get("fqdn")
                resources = [
                    r
                    for r in self.dns_resources.values()
                    if fqdn is None or r["fqdn"] == fqdn
                ]
                return _json_response(200, resources)
            if method == "POST":
                if "fqdn" not in form:
                    return _json_response(400, {"fqdn": ["This field is required."]})
                data = self.add_dns_resource(
                    form["fqdn"],
                    form.get("ip_addresses", "").split(),
                    int(form["address_ttl"]) if "address_ttl" in form else None,
                )
                return _json_response(200, data)
            return _text_response(405, "Method not allowed")

        resource = self.dns_resources.get(int(parts[0]))
        if resource is None:
            return _text_response(404, "No DNSResource matches the given query.")
        if method == "GET":
            return _json_response(200, resource)
        if method == "PUT":
            if "fqdn" in form:
                resource["fqdn"] = form["fqdn"]
            if "address_ttl" in form:
                resource["address_ttl"] = int(form["address_ttl"])
            if "ip_addresses" in form:
                resource["ip_addresses"] = [
                    {"id": n, "ip": ip}
                    for n, ip in enumerate(form["ip_addresses"].split())
                ]
            return _json_response(200, resource)
        if method == "DELETE":
            del self.dns_resources[resource["id"]]
            return httpx.Response(204)
        return _text_response(405, "Method not allowed")


@pytest.fixture
def fake_maas() -> FakeMAAS:
    """An empty fake MAAS with three zones."""
    return FakeMAAS()


@pytest.fixture
def client_set(fake_maas: FakeMAAS):
    """ClientSet wired to the fake MAAS."""
    config = ClientConfig(endpoint=ENDPOINT, api_key=API_KEY)
    with ClientSet.from_config(config, transport=fake_maas.transport) as client_set:
        yield client_set
