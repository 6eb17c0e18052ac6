import os
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from heroforge.application.policies import CreationPolicy
from heroforge.bootstrap import create_forge_services, policy_from_env
from heroforge.domain.models.economy import TicketKind
from heroforge.infrastructure.randomness.http_oracle import HttpRandomnessOracle
from heroforge.infrastructure.randomness.inmemory_oracle import InMemoryRandomnessOracle


class CreationPolicyTests(unittest.TestCase):
    def test_allowance_caps_extra_slots(self) -> None:
        policy = CreationPolicy(base_slots=3, max_extra_slots=200)

        self.assertEqual(3, policy.allowance(0))
        self.assertEqual(203, policy.allowance(500))
        self.assertEqual(3, policy.allowance(-4))

    def test_invalid_values_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            CreationPolicy(slot_batch_size=0)
        with self.assertRaises(ValueError):
            CreationPolicy(request_timeout_seconds=-1)
        with self.assertRaises(ValueError):
            CreationPolicy(creation_fee=-5)

    def test_operators_are_normalized(self) -> None:
        policy = CreationPolicy(operators=frozenset({"ops"}))
        self.assertTrue(policy.is_operator("ops"))
        self.assertFalse(policy.is_operator("A"))


class BootstrapTests(unittest.TestCase):
    def test_policy_reads_environment(self) -> None:
        env = {
            "HEROFORGE_BASE_SLOTS": "4",
            "HEROFORGE_MAX_EXTRA_SLOTS": "20",
            "HEROFORGE_SLOT_BATCH_SIZE": "2",
            "HEROFORGE_REQUEST_TIMEOUT_S": "90",
            "HEROFORGE_CREATION_FEE": "25",
            "HEROFORGE_OPERATORS": "ops, admin ,",
        }
        with mock.patch.dict(os.environ, env):
            policy = policy_from_env()

        self.assertEqual(4, policy.base_slots)
        self.assertEqual(20, policy.max_extra_slots)
        self.assertEqual(2, policy.slot_batch_size)
        self.assertEqual(90.0, policy.request_timeout_seconds)
        self.assertEqual(25, policy.creation_fee)
        self.assertEqual(frozenset({"ops", "admin"}), policy.operators)

    def test_defaults_build_inmemory_services(self) -> None:
        services = create_forge_services()

        self.assertEqual("memory", services.backend)
        self.assertIsInstance(services.oracle, InMemoryRandomnessOracle)
        self.assertEqual(3, services.coordinator.policy.base_slots)

    def test_oracle_url_selects_http_oracle(self) -> None:
        with mock.patch.dict(os.environ, {"HEROFORGE_ORACLE_URL": "http://oracle.test"}):
            services = create_forge_services()

        self.assertIsInstance(services.oracle, HttpRandomnessOracle)
        services.oracle.close()

    def test_sql_backend_runs_creation_end_to_end(self) -> None:
        oracle = InMemoryRandomnessOracle(entropy=lambda: 424242)
        with mock.patch.dict(os.environ, {"HEROFORGE_DATABASE_URL": "sqlite://"}):
            services = create_forge_services(oracle=oracle)

        self.assertEqual("sql", services.backend)
        services.ticket_ledger.grant("A", TicketKind.CREATION)
        request_id = services.coordinator.request_creation("A")
        created = oracle.deliver(request_id)

        roster = services.characters.roster("A")
        self.assertEqual(1, roster.active_count)
        self.assertEqual(created.attributes.as_dict(), roster.characters[0].attributes)
        self.assertIsNone(roster.pending)

        result = services.progression.award_experience(int(created.id), 250)
        self.assertEqual(3, result.to_level)

    def test_sql_backend_returns_ticket_when_oracle_fails(self) -> None:
        oracle = InMemoryRandomnessOracle(entropy=lambda: 1)
        with mock.patch.dict(os.environ, {"HEROFORGE_DATABASE_URL": "sqlite://"}):
            services = create_forge_services(oracle=oracle)
        services.ticket_ledger.grant("A", TicketKind.CREATION)

        with mock.patch.object(oracle, "request", side_effect=RuntimeError("oracle down")):
            with self.assertRaises(RuntimeError):
                services.coordinator.request_creation("A")

        self.assertEqual(1, services.ticket_ledger.balance("A", TicketKind.CREATION))
        self.assertIsNone(services.coordinator.pending_request_for("A"))


if __name__ == "__main__":
    unittest.main()
