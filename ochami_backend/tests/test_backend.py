import threading
import time
import unittest

import requests

from ochami_backend.backend import Ochami
from ochami_backend.errors import (
    ClientError,
    DecodeError,
    HostlistParseError,
    InvalidArgumentError,
    PartialFailureError,
    RequestTimeoutError,
    TransportError,
)
from ochami_backend.interfaces import BackendDispatcher
from ochami_backend.tests.fakes import FakeSession, make_response, make_settings
from ochami_backend.transport import TransportBridge


GROUP_MEMBERS = {"compute": ["x1", "x2"], "gpu": ["x2", "x3"]}


class OchamiTestCase(unittest.IsolatedAsyncioTestCase):
    """Wires an Ochami backend to a FakeSession routed through self.handle()."""

    settings_overrides = {}

    def setUp(self):
        self.settings = make_settings(**self.settings_overrides)
        self.session = FakeSession(self.handle)
        self.transport = TransportBridge(self.settings, session_factory=lambda: self.session)
        self.backend = Ochami(self.settings, transport=self.transport)

    def tearDown(self):
        self.backend.close()
        self.transport.close()

    def handle(self, call):
        raise AssertionError(f"unexpected request {call.method} {call.url}")


class NodeFanOutTests(OchamiTestCase):
    def handle(self, call):
        xname = call.path.rsplit("/", 1)[-1]
        if xname == "b":
            return make_response(404, {"title": "Not Found", "detail": f"no such xname {xname}"}, call.url)
        if xname == "c":
            raise requests.exceptions.ConnectionError("connection reset")
        if xname == "bad":
            return make_response(200, ["not", "a", "component"], call.url)
        if xname == "shape":
            return make_response(200, {"unexpected": "shape"}, call.url)
        if xname == "alias":
            return make_response(200, {"ID": "x9", "Type": "Node"}, call.url)
        if xname.startswith("n"):
            # later hosts answer first
            time.sleep(0.02 * (5 - int(xname[1:])))
        return make_response(200, {"ID": xname, "Type": "Node", "State": "Ready"}, call.url)

    def test_is_a_backend_dispatcher(self):
        self.assertIsInstance(self.backend, BackendDispatcher)

    async def test_empty_selector_makes_no_requests(self):
        for selector in ["", "   ", [], None]:
            with self.subTest(selector=selector):
                with self.assertRaises(InvalidArgumentError):
                    await self.backend.get_nodes(selector)
        self.assertEqual(self.session.calls, [])

    async def test_malformed_selector_makes_no_requests(self):
        with self.assertRaises(HostlistParseError):
            await self.backend.get_nodes("nid[01-")
        self.assertEqual(self.session.calls, [])

    async def test_partial_failure_is_reported_per_host(self):
        result = await self.backend.get_nodes(["a", "b", "c"])

        self.assertEqual(result.hosts, ["a", "b", "c"])
        self.assertTrue(result["a"].ok)
        self.assertEqual(result["a"].value.state, "Ready")
        self.assertIsInstance(result["b"].error, ClientError)
        self.assertEqual(result["b"].error.status_code, 404)
        self.assertIsInstance(result["c"].error, TransportError)
        self.assertTrue(result.is_partial)
        self.assertEqual(result.failed_hosts(), ["b", "c"])

        with self.assertRaises(PartialFailureError) as ctx:
            result.unwrap()
        self.assertIs(ctx.exception.batch, result)

    async def test_schema_mismatch_is_decode_error(self):
        result = await self.backend.get_nodes("bad")
        self.assertIsInstance(result["bad"].error, DecodeError)
        self.assertTrue(result.all_failed)

    async def test_object_without_component_id_is_decode_error(self):
        result = await self.backend.get_nodes("shape")
        self.assertIsInstance(result["shape"].error, DecodeError)
        self.assertFalse(result["shape"].ok)

    async def test_record_for_another_component_is_decode_error(self):
        result = await self.backend.get_nodes(["alias", "a"])
        self.assertIsInstance(result["alias"].error, DecodeError)
        self.assertIn("x9", result["alias"].error.message)
        self.assertTrue(result["a"].ok)

    async def test_order_follows_expansion_not_completion(self):
        result = await self.backend.get_nodes("n[1-4]")
        self.assertEqual(result.hosts, ["n1", "n2", "n3", "n4"])
        self.assertEqual([node.id for node in result.unwrap()], ["n1", "n2", "n3", "n4"])

    async def test_requests_carry_token(self):
        await self.backend.get_nodes("a")
        self.assertEqual(self.session.calls[0].headers["Authorization"], "Bearer test-token")
        self.assertEqual(self.session.calls[0].path, "/hsm/v2/State/Components/a")

    async def test_close_leaves_injected_transport_open(self):
        self.backend.close()
        result = await self.backend.get_nodes("a")
        self.assertTrue(result["a"].ok)

    async def test_close_shuts_down_own_transport(self):
        backend = Ochami(self.settings)
        backend.close()
        result = await backend.get_nodes("a")
        self.assertIsInstance(result["a"].error, TransportError)
        self.assertEqual(self.session.calls, [])


class QueuedRequestTests(OchamiTestCase):
    settings_overrides = {"max_concurrent": 1, "request_timeout_seconds": 0.3}

    def setUp(self):
        super().setUp()
        self.release = threading.Event()

    def tearDown(self):
        self.release.set()
        super().tearDown()

    def handle(self, call):
        xname = call.path.rsplit("/", 1)[-1]
        if xname == "a":
            # holds the only worker well past the deadline
            self.release.wait(1.0)
        return make_response(200, {"ID": xname, "Type": "Node"}, call.url)

    async def test_waiting_for_a_worker_does_not_count_toward_deadline(self):
        result = await self.backend.get_nodes(["a", "b"])

        self.assertIsInstance(result["a"].error, RequestTimeoutError)
        self.assertTrue(result["b"].ok)
        self.assertEqual(result["b"].value.id, "b")
        self.assertIn("/hsm/v2/State/Components/b", [call.path for call in self.session.calls])


class PowerStatusTests(OchamiTestCase):
    settings_overrides = {"batch_size": 2}

    def handle(self, call):
        xnames = call.param_values("xname")
        if "x5" in xnames:
            return make_response(500, {"message": "pcs unavailable"}, call.url)
        # x2 is left out of the response
        status = [{"xname": xname, "powerState": "on"} for xname in xnames if xname != "x2"]
        return make_response(200, {"status": status}, call.url)

    async def test_batches_and_missing_hosts(self):
        result = await self.backend.get_power_status("x[1-5]")

        self.assertEqual(len(self.session.calls), 3)
        self.assertEqual(
            sorted(tuple(call.param_values("xname")) for call in self.session.calls),
            [("x1", "x2"), ("x3", "x4"), ("x5",)],
        )
        self.assertEqual(result["x1"].value.power_state, "on")
        self.assertIsInstance(result["x2"].error, DecodeError)
        self.assertTrue(result["x3"].ok)
        self.assertEqual(result["x5"].error.kind, "ServerError")
        self.assertEqual(result["x5"].error.message, "pcs unavailable")

    async def test_filtered_hosts_are_not_errors(self):
        result = await self.backend.get_power_status("x[1-2]", power_state_filter="on")
        self.assertTrue(result.all_succeeded)
        self.assertIsNone(result["x2"].value)
        self.assertEqual(self.session.calls[0].param_values("powerStateFilter"), ["on"])

    async def test_invalid_filter_fails_before_requests(self):
        with self.assertRaises(InvalidArgumentError) as ctx:
            await self.backend.get_power_status("x[1-3]", power_state_filter=123)
        self.assertIn("PowerStatusFilter", ctx.exception.message)
        self.assertEqual(self.session.calls, [])


class PowerTransitionTests(OchamiTestCase):
    settings_overrides = {"transition_poll_interval_seconds": 0.01}

    def setUp(self):
        super().setUp()
        self.polls = 0

    def handle(self, call):
        if call.method == "POST":
            self.started = call.json
            return make_response(200, {"transitionID": "t-1", "operation": "Soft-Restart"}, call.url)
        self.polls += 1
        if self.polls < 2:
            return make_response(200, {"transitionID": "t-1", "transitionStatus": "in-progress"}, call.url)
        return make_response(
            200,
            {
                "transitionID": "t-1",
                "transitionStatus": "completed",
                "taskCounts": {"total": 2, "succeeded": 1, "failed": 1},
                "tasks": [
                    {"xname": "x1", "taskStatus": "succeeded"},
                    {"xname": "x2", "taskStatus": "failed", "error": "BMC unreachable"},
                ],
            },
            call.url,
        )

    async def test_reset_waits_for_completion(self):
        result = await self.backend.power_reset_sync("x[1-2]")

        self.assertEqual(self.started["operation"], "soft-restart")
        self.assertEqual(self.started["location"], [{"xname": "x1"}, {"xname": "x2"}])
        self.assertEqual(self.polls, 2)
        self.assertTrue(result["x1"].value.succeeded)
        self.assertFalse(result["x2"].value.succeeded)
        self.assertEqual(result["x2"].value.error, "BMC unreachable")

    async def test_forced_power_off_operation(self):
        await self.backend.power_off_sync("x1", force=True)
        self.assertEqual(self.started["operation"], "force-off")


class GroupTests(OchamiTestCase):
    def handle(self, call):
        if call.method == "POST" and call.json == {"id": "x2"}:
            return make_response(409, {"title": "Conflict", "detail": "x2 already a member"}, call.url)
        if call.method == "GET" and call.path.endswith("/broken/members"):
            return make_response(500, b"boom", call.url)
        if call.method == "GET" and call.path.endswith("/members"):
            label = call.path.split("/")[-2]
            return make_response(200, {"ids": GROUP_MEMBERS[label]}, call.url)
        if call.method == "GET" and call.path.endswith("/groups"):
            groups = [{"label": label, "members": {"ids": ids}} for label, ids in GROUP_MEMBERS.items()]
            return make_response(200, groups, call.url)
        return make_response(200, None, call.url)

    def writes(self):
        return [(call.method, call.path) for call in self.session.calls if call.method != "GET"]

    async def test_migrate_only_removes_hosts_added_to_target(self):
        result = await self.backend.migrate_group_members("gpu", "compute", ["x1", "x2"])

        self.assertEqual(result["x1"].value, "x1")
        self.assertIsInstance(result["x2"].error, ClientError)
        deletes = [path for method, path in self.writes() if method == "DELETE"]
        self.assertEqual(deletes, ["/hsm/v2/groups/compute/members/x1"])

    async def test_migrate_requires_parent_membership(self):
        with self.assertRaises(InvalidArgumentError) as ctx:
            await self.backend.migrate_group_members("gpu", "compute", "x[1-4]")
        self.assertIn("x3,x4", ctx.exception.message)
        self.assertEqual(self.writes(), [])

    async def test_update_members_removes_and_adds(self):
        result = await self.backend.update_group_members("compute", members_to_remove="x1", members_to_add="x[3-4]")

        self.assertEqual(result.hosts, ["x1", "x3", "x4"])
        self.assertEqual(result["x1"].value, "removed")
        self.assertEqual(result["x4"].value, "added")
        self.assertEqual(
            sorted(self.writes()),
            [
                ("DELETE", "/hsm/v2/groups/compute/members/x1"),
                ("POST", "/hsm/v2/groups/compute/members"),
                ("POST", "/hsm/v2/groups/compute/members"),
            ],
        )
        added = sorted(call.json["id"] for call in self.session.calls if call.method == "POST")
        self.assertEqual(added, ["x3", "x4"])

    async def test_update_members_reports_each_host(self):
        result = await self.backend.update_group_members("compute", members_to_add=["x2", "x5"])
        self.assertIsInstance(result["x2"].error, ClientError)
        self.assertTrue(result["x5"].ok)

    async def test_update_members_rejects_conflicting_or_empty_sets(self):
        for remove, add in [("x[1-2]", "x2"), (None, []), ("", None)]:
            with self.subTest(remove=remove, add=add):
                with self.assertRaises(InvalidArgumentError):
                    await self.backend.update_group_members("compute", remove, add)
        self.assertEqual(self.session.calls, [])

    async def test_group_map_by_member(self):
        group_map = await self.backend.get_group_map_and_filter_by_member_vec(["x3", "x9"])
        self.assertEqual(group_map, {"gpu": ["x3"]})

        group_map = await self.backend.get_group_map_and_filter_by_member_vec(["x2"])
        self.assertEqual(group_map, {"compute": ["x2"], "gpu": ["x2"]})

    async def test_bad_label_fails_before_requests(self):
        with self.assertRaises(InvalidArgumentError):
            await self.backend.add_members_to_group("../x", "a")
        self.assertEqual(self.session.calls, [])

    async def test_members_of_several_groups_skip_failures(self):
        members = await self.backend.get_member_vec_from_group_name_vec(["compute", "broken", "gpu"])
        self.assertEqual(members, ["x1", "x2", "x3"])

class BootParametersTests(OchamiTestCase):
    def handle(self, call):
        if call.method == "GET":
            names = call.param_values("name")
            return make_response(200, [{"hosts": names[:1], "kernel": "vmlinuz-a"}], call.url)
        return make_response(200, None, call.url)

    async def test_update_requires_a_field(self):
        with self.assertRaises(InvalidArgumentError):
            await self.backend.update_boot_configuration("x1")
        self.assertEqual(self.session.calls, [])

    async def test_update_patches_each_batch(self):
        result = await self.backend.update_boot_configuration("x[1-3]", kernel="vmlinuz-b")
        self.assertTrue(result.all_succeeded)
        self.assertEqual(len(self.session.calls), 1)
        self.assertEqual(self.session.calls[0].method, "PATCH")
        self.assertEqual(self.session.calls[0].json, {"hosts": ["x1", "x2", "x3"], "kernel": "vmlinuz-b"})

    async def test_update_with_invalid_value_fails_before_requests(self):
        with self.assertRaises(InvalidArgumentError):
            await self.backend.update_boot_configuration("x[1-3]", kernel=["vmlinuz-b"])
        self.assertEqual(self.session.calls, [])

    async def test_get_maps_records_to_hosts(self):
        result = await self.backend.get_bootparameters("x[1-2]")
        self.assertEqual(result["x1"].value.kernel, "vmlinuz-a")
        self.assertIsInstance(result["x2"].error, DecodeError)


class NidToXnameTests(OchamiTestCase):
    def handle(self, call):
        nids = call.param_values("nid")
        components = [
            {"ID": "x1000c0s0b0n0", "NID": 1},
            {"ID": "x1000c0s0b0n1", "NID": 2},
            {"ID": "x1000c0s1b0n0", "NID": 10},
        ]
        if nids:
            components = [c for c in components if str(c["NID"]) in nids]
        return make_response(200, {"Components": components}, call.url)

    async def test_hostlist_mode_queries_by_nid(self):
        xnames = await self.backend.nid_to_xname("nid[000002,000001]", is_regex=False)
        self.assertEqual(xnames, ["x1000c0s0b0n1", "x1000c0s0b0n0"])
        self.assertEqual(self.session.calls[0].param_values("nid"), ["2", "1"])
        self.assertEqual(self.session.calls[0].param_values("nidonly"), ["true"])

    async def test_regex_mode_matches_padded_names(self):
        xnames = await self.backend.nid_to_xname("nid00000[12]$", is_regex=True)
        self.assertEqual(xnames, ["x1000c0s0b0n0", "x1000c0s0b0n1"])

    async def test_non_nid_hosts_are_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            await self.backend.nid_to_xname("login01", is_regex=False)
        self.assertEqual(self.session.calls, [])


if __name__ == "__main__":
    unittest.main()
