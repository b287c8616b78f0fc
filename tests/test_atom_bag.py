import itertools
import math
import unittest

from atomframe import ORIGIN_PRIORITY, Atom, AtomBag, AtomOrigin, AtomTrace, TracePart, trace_parts


def _atom(atom_id: str, m: float, origin: AtomOrigin) -> Atom:
    return Atom(id=atom_id, magnitude=m, confidence=1.0, origin=origin)


class TestAtomBag(unittest.TestCase):
    def test_01_priority_holds_for_every_origin_pair(self) -> None:
        for high, low in itertools.combinations(ORIGIN_PRIORITY, 2):
            for order in ((high, low), (low, high)):
                bag = AtomBag()
                for origin in order:
                    bag.add(_atom("ctx:danger:A", 0.9 if origin is high else 0.1, origin))
                resolved = bag.resolve()
                self.assertIs(resolved["ctx:danger:A"].origin, high, msg=f"{high} must beat {low}")
                self.assertEqual(resolved["ctx:danger:A"].magnitude, 0.9)

    def test_02_override_beats_world(self) -> None:
        bag = AtomBag()
        bag.add(_atom("world:loc:privacy:A", 0.2, AtomOrigin.WORLD))
        bag.add(_atom("world:loc:privacy:A", 0.8, AtomOrigin.OVERRIDE))
        self.assertEqual(bag.get_resolved("world:loc:privacy:A").magnitude, 0.8)
        self.assertEqual(len(bag.by_origin(AtomOrigin.WORLD)), 1)
        self.assertEqual(len(bag.by_origin("override")), 1)

    def test_03_last_write_wins_within_layer(self) -> None:
        bag = AtomBag()
        bag.add_many([_atom("obs:los:A:B", 0.3, AtomOrigin.OBS), _atom("obs:los:A:B", 0.6, AtomOrigin.OBS)])
        self.assertEqual(len(bag), 1)
        self.assertEqual(bag.get_resolved("obs:los:A:B").magnitude, 0.6)

    def test_04_derived_only_fills_gaps(self) -> None:
        bag = AtomBag()
        bag.add(_atom("world:map:escape:A", 0.7, AtomOrigin.WORLD))
        bag.add(_atom("world:map:escape:A", 0.5, AtomOrigin.DERIVED))
        bag.add(_atom("ctx:crowd:A", 0.4, AtomOrigin.DERIVED))
        resolved = bag.resolve()
        self.assertEqual(resolved["world:map:escape:A"].magnitude, 0.7)
        self.assertEqual(resolved["ctx:crowd:A"].magnitude, 0.4)
        self.assertIn("ctx:crowd:A", bag)
        self.assertNotIn("ctx:danger:A", bag)

    def test_05_resolve_is_a_fresh_snapshot(self) -> None:
        bag = AtomBag()
        first = bag.resolve()
        bag.add(_atom("ctx:crowd:A", 0.4, AtomOrigin.DERIVED))
        second = bag.resolve()
        self.assertNotIn("ctx:crowd:A", first)
        self.assertIn("ctx:crowd:A", second)
        self.assertIsNone(bag.get_resolved("missing:id"))
        self.assertEqual(bag.layer_sizes(), {"override": 0, "obs": 0, "world": 0, "derived": 1})


class TestAtomModel(unittest.TestCase):
    def test_01_non_finite_values_become_zero(self) -> None:
        atom = Atom(id="ctx:danger:A", magnitude=math.nan, confidence=math.inf)
        self.assertEqual(atom.magnitude, 0.0)
        self.assertEqual(atom.confidence, 0.0)
        self.assertEqual(atom.ns, "ctx")
        self.assertIs(atom.origin, AtomOrigin.DERIVED)

    def test_02_legacy_keyed_parts_convert_in_order(self) -> None:
        parts = trace_parts({"cover": 0.4, "escape": {"val": 0.6, "w": 0.35}, "formula": "x", "bad": "n/a"})
        self.assertEqual(
            parts,
            (TracePart("cover", 0.4), TracePart("escape", 0.6, 0.35)),
        )
        listed = trace_parts([{"name": "a", "value": 1, "weight": 0.5}, TracePart("b", 0.2)])
        self.assertEqual(listed, (TracePart("a", 1.0, 0.5), TracePart("b", 0.2)))

    def test_03_from_mapping_accepts_short_keys(self) -> None:
        atom = Atom.from_mapping(
            {
                "id": "tom:dyad:A:B:threat",
                "m": 0.7,
                "c": 0.9,
                "o": "obs",
                "meta": {"trace": {"usedAtomIds": ["x"], "parts": {"k": 0.1}, "notes": ["n1", "n2"]}},
            }
        )
        self.assertEqual(atom.magnitude, 0.7)
        self.assertEqual(atom.confidence, 0.9)
        self.assertIs(atom.origin, AtomOrigin.OBS)
        self.assertEqual(atom.trace.used_atom_ids, ("x",))
        self.assertEqual(atom.trace.parts, (TracePart("k", 0.1),))
        self.assertEqual(atom.trace.notes, ("n1", "n2"))
        self.assertEqual(atom.to_dict()["trace"]["notes"], ["n1", "n2"])

    def test_04_unknown_origin_falls_back_to_derived(self) -> None:
        with self.assertLogs("atomframe.atoms", level="WARNING"):
            atom = Atom.from_mapping({"id": "x:y", "magnitude": 0.2, "origin": "guess"})
        self.assertIs(atom.origin, AtomOrigin.DERIVED)

    def test_05_to_dict_preserves_trace_verbatim(self) -> None:
        trace = AtomTrace.build(["a", "b"], [TracePart("p", 0.3, 0.5)], formula_id="f@v1", notes="n")
        atom = Atom(id="ctx:danger:A", magnitude=0.3, trace=trace, subject="A")
        out = atom.to_dict()
        self.assertEqual(
            out["trace"],
            {"usedAtomIds": ["a", "b"], "parts": [{"name": "p", "value": 0.3, "weight": 0.5}], "formulaId": "f@v1", "notes": "n"},
        )
        self.assertEqual(out["subject"], "A")


if __name__ == "__main__":
    unittest.main()
