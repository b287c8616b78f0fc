import random
import unittest

import torch

from atomframe import (
    Atom,
    AtomOrigin,
    ThreatParams,
    ThreatWeights,
    derive_threat_stack,
    lin_mix,
    noisy_or,
    pick_ctx_id,
)
from atomframe.threat import assess_dyads


def _resolved(values):
    return {k: Atom(id=k, magnitude=v, origin=AtomOrigin.WORLD) for k, v in values.items()}


OBSERVED = {
    "obs:nearby:A:B": 0.4,
    "obs:los:A:B": 0.58375,
    "obs:audio:A:B": 0.725,
}


class TestMath(unittest.TestCase):
    def test_01_noisy_or_edges(self) -> None:
        self.assertEqual(noisy_or([]), 0.0)
        self.assertEqual(noisy_or([1.0]), 1.0)
        self.assertAlmostEqual(noisy_or([1.0, 0.2]), 1.0, places=9)
        self.assertAlmostEqual(noisy_or([0.5, 0.5]), 0.75, places=9)

    def test_02_noisy_or_is_monotone(self) -> None:
        rng = random.Random(3)
        for _ in range(50):
            values = [rng.random() for _ in range(rng.randint(0, 5))]
            base = noisy_or(values)
            self.assertGreaterEqual(noisy_or(values + [rng.random()]) + 1e-12, base)
            if values:
                bumped = list(values)
                bumped[0] = min(1.0, bumped[0] + 0.1)
                self.assertGreaterEqual(noisy_or(bumped) + 1e-12, base)

    def test_03_lin_mix_clamps_and_keeps_parts(self) -> None:
        mix = lin_mix([("a", 0.9, 0.8), ("b", 0.9, 0.8)])
        self.assertEqual(mix.value, 1.0)
        self.assertEqual([p.name for p in mix.parts], ["a", "b"])

    def test_04_default_weights_sum_to_one(self) -> None:
        self.assertAlmostEqual(sum(ThreatWeights().as_dict().values()), 1.0, places=9)


class TestThreatStack(unittest.TestCase):
    def setUp(self) -> None:
        random.seed(11)
        torch.manual_seed(11)

    def test_01_all_channels_saturated_give_full_threat(self) -> None:
        resolved = _resolved(
            {
                "world:map:danger:A": 1.0,
                "world:loc:control:A": 1.0,
                "ctx:normPressure:A": 1.0,
                "ctx:uncertainty:A": 1.0,
                "body:fatigue:A": 1.0,
                "ctx:crowd:A": 1.0,
                "scene:urgency:A": 1.0,
                "obs:nearby:A:B": 1.0,
                "obs:los:A:B": 1.0,
                "obs:audio:A:B": 1.0,
                "tom:dyad:A:B:threat": 1.0,
                "tom:dyad:A:B:support": 0.0,
            }
        )
        atoms = {a.id: a.magnitude for a in derive_threat_stack("A", resolved, ["B"])}
        for channel in ("env", "soc", "auth", "unc", "body", "sc"):
            self.assertAlmostEqual(atoms[f"threat:{channel}:A"], 1.0, places=9, msg=channel)
        self.assertAlmostEqual(atoms["threat:final:A"], 1.0, places=9)
        self.assertAlmostEqual(atoms["mind:threat:A"], atoms["threat:final:A"], places=12)

    def test_02_trust_fallback_hostility(self) -> None:
        resolved = _resolved(OBSERVED)
        (dyad,) = assess_dyads("A", resolved, ["B"], ThreatParams())
        hostility = 0.06 + (1.0 - 0.45) * 0.75
        effective = hostility * (1.0 - 0.85 * 0.45)
        percept = 0.6 * 0.58375 + 0.4 * 0.725
        self.assertAlmostEqual(dyad.base_threat, hostility, places=9)
        self.assertAlmostEqual(dyad.t, 0.4 * effective * percept, places=9)
        self.assertEqual(dyad.used_atom_ids, ("obs:nearby:A:B", "obs:los:A:B", "obs:audio:A:B", "tom:trustEff:A:B"))

    def test_03_dyad_atoms_replace_trust_fallback(self) -> None:
        values = dict(OBSERVED)
        values.update({"tom:dyad:A:B:threat": 0.9, "tom:dyad:A:B:support": 0.1, "tom:trustEff:A:B": 0.0})
        atoms = {a.id: a for a in derive_threat_stack("A", _resolved(values), ["B"])}
        soc = atoms["threat:soc:A"]
        percept = 0.6 * 0.58375 + 0.4 * 0.725
        self.assertAlmostEqual(soc.magnitude, 0.4 * 0.9 * (1.0 - 0.85 * 0.1) * percept, places=9)
        self.assertIn("tom:dyad:A:B:threat", soc.trace.used_atom_ids)
        self.assertIn("tom:dyad:A:B:support", soc.trace.used_atom_ids)
        self.assertNotIn("tom:trustEff:A:B", soc.trace.used_atom_ids)

    def test_04_contextual_dyad_wins_over_plain(self) -> None:
        values = dict(OBSERVED)
        values.update({"tom:dyad:A:B:threat": 0.1, "tom:dyad:A:B:threat_ctx": 0.8})
        (dyad,) = assess_dyads("A", _resolved(values), ["B"], ThreatParams())
        self.assertEqual(dyad.base_threat, 0.8)
        self.assertIn("tom:dyad:A:B:threat_ctx", dyad.used_atom_ids)

    def test_05_final_ctx_axis_is_preferred(self) -> None:
        resolved = _resolved({"ctx:danger:A": 0.1, "ctx:final:danger:A": 0.9})
        self.assertEqual(pick_ctx_id(resolved, "danger", "A"), "ctx:final:danger:A")
        self.assertEqual(pick_ctx_id(resolved, "crowd", "A"), "ctx:crowd:A")
        atoms = {a.id: a for a in derive_threat_stack("A", resolved, [])}
        self.assertAlmostEqual(atoms["threat:env:A"].magnitude, 0.9, places=9)
        self.assertIn("ctx:final:danger:A", atoms["threat:env:A"].trace.used_atom_ids)

    def test_06_no_others_means_no_social_threat(self) -> None:
        atoms = {a.id: a for a in derive_threat_stack("A", {}, [])}
        self.assertEqual(atoms["threat:soc:A"].magnitude, 0.0)
        self.assertAlmostEqual(atoms["threat:unc:A"].magnitude, 0.5, places=9)
        self.assertAlmostEqual(atoms["threat:final:A"].magnitude, 0.12 * 0.5, places=9)
        self.assertEqual(atoms["mind:support:A"].magnitude, 0.0)

    def test_07_support_uses_trust(self) -> None:
        values = dict(OBSERVED)
        values["tom:trustEff:A:B"] = 0.5
        atoms = {a.id: a for a in derive_threat_stack("A", _resolved(values), ["B"])}
        self.assertAlmostEqual(atoms["mind:support:A"].magnitude, 0.2, places=9)

    def test_08_weights_accept_mapping(self) -> None:
        resolved = _resolved({"ctx:uncertainty:A": 1.0})
        atoms = {a.id: a for a in derive_threat_stack("A", resolved, [], weights={"unc": 0.5})}
        self.assertAlmostEqual(atoms["threat:final:A"].magnitude, 0.5, places=9)
        parts = {p.name: p.weight for p in atoms["threat:final:A"].trace.parts}
        self.assertEqual(parts["T_unc"], 0.5)

    def test_09_all_outputs_are_in_unit_range(self) -> None:
        rng = random.Random(5)
        ids = [
            "world:map:danger:A",
            "world:env:hazard:A",
            "world:loc:control:A",
            "ctx:uncertainty:A",
            "ctx:crowd:A",
            "ctx:surveillance:A",
            "body:stress:A",
            "scene:urgency:A",
            "obs:nearby:A:B",
            "obs:los:A:B",
            "obs:audio:A:B",
        ]
        for _ in range(20):
            resolved = _resolved({i: rng.random() for i in ids})
            for atom in derive_threat_stack("A", resolved, ["B"]):
                self.assertGreaterEqual(atom.magnitude, 0.0, msg=atom.id)
                self.assertLessEqual(atom.magnitude, 1.0, msg=atom.id)


if __name__ == "__main__":
    unittest.main()
