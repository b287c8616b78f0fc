import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from main import main


SCENE = {
    "agent": {"id": "A", "pos": [0, 0]},
    "location": {"visibility": 0.7, "crowd": 0.3, "noise": 0.2},
    "otherAgents": [{"id": "B", "pos": [3, 0]}],
}


class TestLauncher(unittest.TestCase):
    def _run(self, argv):
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(argv)
        return code, buf.getvalue()

    def test_01_frame_panels_only(self) -> None:
        with tempfile.TemporaryDirectory(prefix="atomframe_cli_") as td:
            path = Path(td) / "scene.json"
            path.write_text(json.dumps(SCENE), encoding="utf-8")
            code, out = self._run(["frame", str(path), "--panels-only", "--validate", "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(payload["agentId"], "A")
        self.assertNotIn("atoms", payload)
        self.assertIn("emo", payload["panels"])
        self.assertEqual(len(payload["scoreboard"]), 4)
        self.assertTrue(payload["validation"]["ok"])

    def test_02_frame_with_config_and_no_emotion(self) -> None:
        with tempfile.TemporaryDirectory(prefix="atomframe_cli_") as td:
            scene = Path(td) / "scene.json"
            scene.write_text(json.dumps(SCENE), encoding="utf-8")
            config = Path(td) / "config.json"
            config.write_text(json.dumps({"observation": {"r0": 6}}), encoding="utf-8")
            code, out = self._run(["frame", str(scene), "--config", str(config), "--no-emotion", "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        atoms = {a["id"]: a for a in payload["atoms"]}
        self.assertAlmostEqual(atoms["obs:nearby:A:B"]["magnitude"], 0.5, places=9)
        self.assertNotIn("emo", payload["panels"])

    def test_03_explain_and_describe(self) -> None:
        with tempfile.TemporaryDirectory(prefix="atomframe_cli_") as td:
            path = Path(td) / "scene.json"
            path.write_text(json.dumps(SCENE), encoding="utf-8")
            code, out = self._run(["explain", str(path), "ctx:danger:A", "--depth", "1", "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        tree = json.loads(out)
        self.assertEqual(tree["id"], "ctx:danger:A")
        self.assertEqual(tree["formulaId"], "ctx:danger@v1")

        code, out = self._run(["describe", "threat:final:A", "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["specId"], "threat.final")

    def test_04_no_subcommand_prints_help(self) -> None:
        code, out = self._run([])
        self.assertEqual(code, 2)
        self.assertIn("frame", out)
        self.assertIn("describe", out)

    def test_05_missing_scene_returns_error_code(self) -> None:
        with self.assertLogs("atomframe.main", level="ERROR"):
            code, out = self._run(["frame", "/nonexistent/scene.json", "--log-level", "CRITICAL"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")


if __name__ == "__main__":
    unittest.main()
