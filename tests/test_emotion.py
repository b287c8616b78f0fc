import unittest

from atomframe import (
    Atom,
    AtomBag,
    AtomOrigin,
    apply_stage2,
    derive_appraisals,
    derive_emotions,
    valence_from_unit,
    valence_to_unit,
)


def _resolved(values):
    return {k: Atom(id=k, magnitude=v) for k, v in values.items()}


class TestAppraisals(unittest.TestCase):
    def test_01_appraisals_from_context(self) -> None:
        resolved = _resolved(
            {
                "threat:final:A": 0.5,
                "ctx:uncertainty:A": 0.2,
                "ctx:publicness:A": 0.6,
                "ctx:surveillance:A": 0.5,
                "world:map:cover:A": 0.4,
                "world:map:escape:A": 0.6,
            }
        )
        app = {a.id: a.magnitude for a in derive_appraisals("A", resolved)}
        norm_pressure = 0.65 * 0.5 + 0.35 * 0.6
        self.assertAlmostEqual(app["app:threat:A"], 0.5, places=9)
        self.assertAlmostEqual(app["app:control:A"], 0.45 * 0.4 + 0.35 * 0.6 + 0.20 * 0.8, places=9)
        self.assertAlmostEqual(app["app:pressure:A"], 0.65 * norm_pressure + 0.35 * 0.6, places=9)
        self.assertAlmostEqual(app["app:attachment:A"], 0.75 * 0.4 + 0.25 * 0.4, places=9)
        self.assertEqual(app["app:loss:A"], 0.0)
        self.assertEqual(app["app:goalBlock:A"], 0.0)

    def test_02_explicit_norm_pressure_beats_proxy(self) -> None:
        resolved = _resolved({"ctx:normPressure:A": 1.0, "ctx:surveillance:A": 0.0})
        app = {a.id: a for a in derive_appraisals("A", resolved)}
        self.assertAlmostEqual(app["app:pressure:A"].magnitude, 0.65, places=9)
        parts = {p.name: p.value for p in app["app:pressure:A"].trace.parts}
        self.assertEqual(parts["normPressure"], 1.0)

    def test_03_loss_and_goal_block(self) -> None:
        resolved = _resolved({"ctx:grief:A": 1.0, "ctx:timePressure:A": 0.5, "ctx:scarcity:A": 1.0})
        app = {a.id: a.magnitude for a in derive_appraisals("A", resolved)}
        self.assertAlmostEqual(app["app:loss:A"], 0.65, places=9)
        self.assertAlmostEqual(app["app:goalBlock:A"], 0.55 * 0.5 + 0.45, places=9)


class TestEmotions(unittest.TestCase):
    APP = {
        "app:threat:A": 0.8,
        "app:uncertainty:A": 0.5,
        "app:control:A": 0.2,
        "app:pressure:A": 0.3,
        "app:attachment:A": 0.1,
        "app:loss:A": 0.6,
        "app:goalBlock:A": 0.0,
    }

    def test_01_emotion_formulas(self) -> None:
        emo = {a.id: a.magnitude for a in derive_emotions("A", _resolved(self.APP))}
        self.assertAlmostEqual(emo["emo:fear:A"], 0.48, places=9)
        self.assertAlmostEqual(emo["emo:anger:A"], 0.056, places=9)
        self.assertAlmostEqual(emo["emo:shame:A"], 0.2484, places=9)
        self.assertAlmostEqual(emo["emo:relief:A"], 0.04, places=9)
        self.assertAlmostEqual(emo["emo:resolve:A"], 0.2018, places=9)
        self.assertAlmostEqual(emo["emo:care:A"], 0.072, places=9)
        self.assertAlmostEqual(emo["emo:arousal:A"], 0.64, places=9)
        self.assertAlmostEqual(emo["emo:valence:A"], -0.67174, places=9)

    def test_02_valence_stays_signed(self) -> None:
        worst = _resolved({"app:threat:A": 1.0, "app:uncertainty:A": 1.0, "app:control:A": 0.0, "app:pressure:A": 1.0, "app:loss:A": 1.0})
        emo = {a.id: a.magnitude for a in derive_emotions("A", worst)}
        self.assertEqual(emo["emo:valence:A"], -1.0)
        best = _resolved({"app:threat:A": 0.0, "app:control:A": 1.0, "app:attachment:A": 1.0})
        emo = {a.id: a.magnitude for a in derive_emotions("A", best)}
        self.assertAlmostEqual(emo["emo:valence:A"], 0.9, places=9)

    def test_03_valence_unit_conversion(self) -> None:
        self.assertEqual(valence_to_unit(-1.0), 0.0)
        self.assertEqual(valence_to_unit(1.0), 1.0)
        self.assertAlmostEqual(valence_to_unit(0.0), 0.5, places=9)
        self.assertAlmostEqual(valence_from_unit(0.25), -0.5, places=9)
        self.assertAlmostEqual(valence_from_unit(valence_to_unit(-0.3)), -0.3, places=9)

    def test_04_appraisal_override_feeds_emotions(self) -> None:
        bag = AtomBag(
            [
                Atom(id="threat:final:A", magnitude=0.8),
                Atom(id="app:control:A", magnitude=1.0, origin=AtomOrigin.OVERRIDE),
            ]
        )
        apply_stage2(bag, "A")
        resolved = bag.resolve()
        self.assertEqual(resolved["app:control:A"].origin, AtomOrigin.OVERRIDE)
        self.assertEqual(resolved["emo:fear:A"].magnitude, 0.0)
        self.assertIn("app:control:A", resolved["emo:fear:A"].trace.used_atom_ids)


if __name__ == "__main__":
    unittest.main()
