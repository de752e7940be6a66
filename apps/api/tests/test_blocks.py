#!/usr/bin/env python3

from __future__ import annotations

import unittest

from packages.swapstudio_core.blocks.model import (
    CONTROL,
    LOOKS,
    MAX_REPEAT_TIMES,
    MAX_SCRIPT_EVALUATIONS,
    MOTION,
    GotoBlock,
    InvalidBlockError,
    MoveBlock,
    RepeatBlock,
    SayBlock,
    ThinkBlock,
    TurnBlock,
    block_catalog,
    block_from_dict,
    block_to_dict,
    category_for_type,
    script_cost,
    script_from_dicts,
    script_to_dicts,
)


class BlockModelTests(unittest.TestCase):
    def test_categories_are_fixed_by_type(self) -> None:
        self.assertEqual(MoveBlock(steps=1).category, MOTION)
        self.assertEqual(TurnBlock(degrees=1).category, MOTION)
        self.assertEqual(GotoBlock(x=0, y=0).category, MOTION)
        self.assertEqual(SayBlock(text="hi", seconds=1).category, LOOKS)
        self.assertEqual(ThinkBlock(text="hm", seconds=1).category, LOOKS)
        self.assertEqual(RepeatBlock(times=2, children=(MoveBlock(steps=1),)).category, CONTROL)
        self.assertEqual(category_for_type("goto"), MOTION)
        with self.assertRaises(InvalidBlockError):
            category_for_type("jump")

    def test_nested_repeat_from_dict(self) -> None:
        script = script_from_dicts(
            [
                {"type": "say", "params": {"text": "go", "seconds": 2}},
                {
                    "id": "outer",
                    "type": "repeat",
                    "params": {"times": 3},
                    "children": [
                        {"type": "move", "params": {"steps": 5}},
                        {
                            "type": "repeat",
                            "params": {"times": 2},
                            "children": [{"type": "turn", "params": {"degrees": 45}}],
                        },
                    ],
                },
            ]
        )
        self.assertIsInstance(script[0], SayBlock)
        outer = script[1]
        self.assertIsInstance(outer, RepeatBlock)
        self.assertEqual(outer.block_id, "outer")
        self.assertEqual(outer.times, 3)
        self.assertIsInstance(outer.children[0], MoveBlock)
        inner = outer.children[1]
        self.assertIsInstance(inner, RepeatBlock)
        self.assertEqual(inner.children[0].degrees, 45)

    def test_to_dict_includes_category_and_children(self) -> None:
        block = RepeatBlock(times=2, children=(MoveBlock(steps=3, block_id="m1"),), block_id="r1")
        payload = block_to_dict(block)
        self.assertEqual(payload["id"], "r1")
        self.assertEqual(payload["type"], "repeat")
        self.assertEqual(payload["category"], CONTROL)
        self.assertEqual(payload["params"], {"times": 2})
        self.assertEqual(payload["children"][0]["category"], MOTION)
        self.assertNotIn("children", block_to_dict(MoveBlock(steps=1)))

    def test_dict_form_keeps_block_ids(self) -> None:
        original = (GotoBlock(x=4, y=-2, block_id="g"), ThinkBlock(text="x", seconds=2, block_id="t"))
        rebuilt = script_from_dicts(script_to_dicts(original))
        self.assertEqual(rebuilt, original)

    def test_category_on_input_is_ignored(self) -> None:
        block = block_from_dict({"type": "move", "category": "looks", "params": {"steps": 1}})
        self.assertEqual(block.category, MOTION)

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "jump", "params": {}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"params": {"steps": 1}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict(["move"])

    def test_missing_or_mistyped_params_are_rejected(self) -> None:
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "move", "params": {}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "goto", "params": {"x": 1}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "say", "params": {"text": 5, "seconds": 1}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "turn", "params": {"degrees": "90"}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "move", "params": {"steps": True}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "repeat", "params": {"times": 2}, "children": "nope"})

    def test_fractional_repeat_times_round_up(self) -> None:
        block = block_from_dict({"type": "repeat", "params": {"times": 2.5}})
        self.assertEqual(block.times, 3)
        self.assertEqual(block.children, ())
        self.assertEqual(block_from_dict({"type": "repeat", "params": {"times": 2.0}}).times, 2)
        self.assertEqual(block_from_dict({"type": "repeat", "params": {"times": -4}}).times, 0)

    def test_non_finite_numbers_are_rejected(self) -> None:
        for value in (float("nan"), float("inf"), float("-inf"), 10**400):
            with self.assertRaises(InvalidBlockError):
                block_from_dict({"type": "move", "params": {"steps": value}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "goto", "params": {"x": 0, "y": float("nan")}})
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "repeat", "params": {"times": float("inf")}})

    def test_repeat_times_above_limit_rejected(self) -> None:
        self.assertEqual(
            block_from_dict({"type": "repeat", "params": {"times": MAX_REPEAT_TIMES}}).times,
            MAX_REPEAT_TIMES,
        )
        with self.assertRaises(InvalidBlockError):
            block_from_dict({"type": "repeat", "params": {"times": 1e12}})

    def test_nested_repeats_over_evaluation_budget_rejected(self) -> None:
        inner = {"type": "repeat", "params": {"times": 1000}, "children": [{"type": "move", "params": {"steps": 1}}]}
        with self.assertRaises(InvalidBlockError):
            script_from_dicts([{"type": "repeat", "params": {"times": 1000}, "children": [inner]}])
        many = [{"type": "turn", "params": {"degrees": 1}}] * (MAX_SCRIPT_EVALUATIONS + 1)
        with self.assertRaises(InvalidBlockError):
            script_from_dicts(many)

    def test_script_cost_counts_repeat_passes(self) -> None:
        loop = RepeatBlock(times=3, children=(MoveBlock(steps=1), TurnBlock(degrees=1)))
        self.assertEqual(script_cost((SayBlock(text="a", seconds=1), loop)), 1 + 1 + 3 * 2)
        self.assertEqual(script_cost((RepeatBlock(times=-2, children=(loop,)),)), 1)

    def test_generated_ids_are_unique(self) -> None:
        self.assertNotEqual(MoveBlock(steps=1).block_id, MoveBlock(steps=1).block_id)

    def test_catalog_lists_every_type_with_template(self) -> None:
        catalog = {entry["type"]: entry for entry in block_catalog()}
        self.assertEqual(set(catalog), {"move", "turn", "goto", "say", "think", "repeat"})
        self.assertEqual(catalog["move"]["template"], {"steps": 10})
        self.assertEqual(catalog["turn"]["template"], {"degrees": 15})
        self.assertTrue(catalog["repeat"]["has_children"])
        self.assertEqual([p["name"] for p in catalog["say"]["params"]], ["text", "seconds"])
        for entry in catalog.values():
            block_from_dict({"type": entry["type"], "params": entry["template"]})


if __name__ == "__main__":
    unittest.main()
