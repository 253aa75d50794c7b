import unittest

from ochami_backend import hostlist
from ochami_backend.errors import HostlistParseError, InvalidArgumentError


class ExpandTests(unittest.TestCase):
    def test_plain_hosts_pass_through(self):
        self.assertEqual(hostlist.expand("login01,login02"), ["login01", "login02"])

    def test_range_keeps_zero_padding_of_lower_bound(self):
        self.assertEqual(hostlist.expand("nid[001-003]"), ["nid001", "nid002", "nid003"])

    def test_mixed_items_and_terms(self):
        self.assertEqual(
            hostlist.expand("nid[01-02,05],login1"),
            ["nid01", "nid02", "nid05", "login1"],
        )

    def test_multiple_bracket_groups_expand_as_product(self):
        self.assertEqual(
            hostlist.expand("x1000c0s[0-1]b0n[0-1]"),
            ["x1000c0s0b0n0", "x1000c0s0b0n1", "x1000c0s1b0n0", "x1000c0s1b0n1"],
        )

    def test_duplicates_are_removed_in_first_seen_order(self):
        self.assertEqual(hostlist.expand("n[1-3],n2,n[3-4]"), ["n1", "n2", "n3", "n4"])

    def test_malformed_expressions(self):
        for expression in ["nid[01-", "nid[10-05]", "nid[]", "nid[a-b]", "nid01]", "a,,b", "n[[1]]", ""]:
            with self.subTest(expression=expression):
                with self.assertRaises(HostlistParseError):
                    hostlist.expand(expression)

    def test_oversized_expansion_is_rejected(self):
        with self.assertRaises(HostlistParseError):
            hostlist.expand("n[0-999]c[0-999]")


class CompressTests(unittest.TestCase):
    def test_consecutive_numbers_become_ranges(self):
        self.assertEqual(
            hostlist.compress(["nid001", "nid002", "nid003", "nid007"]),
            "nid[001-003,007]",
        )

    def test_single_host_has_no_brackets(self):
        self.assertEqual(hostlist.compress(["nid001"]), "nid001")

    def test_hosts_without_numbers_are_kept(self):
        self.assertEqual(hostlist.compress(["login", "n1", "n2"]), "login,n[1-2]")

    def test_expand_of_compress_keeps_the_host_set(self):
        for expression in ["nid[001-010,015]", "x1000c0s[0-3]b0n[0-1]", "n[8-12],login01,nid[0009-0011]"]:
            with self.subTest(expression=expression):
                hosts = hostlist.expand(expression)
                self.assertEqual(set(hostlist.expand(hostlist.compress(hosts))), set(hosts))

    def test_rejects_hostlist_syntax_and_empty_hosts(self):
        for hosts in [[], ["n[1]"], ["a,b"], [""]]:
            with self.subTest(hosts=hosts):
                with self.assertRaises(InvalidArgumentError):
                    hostlist.compress(hosts)


if __name__ == "__main__":
    unittest.main()
