from unittest import TestCase
import unittest
import numpy as np
import causalges as cg


class TestFgesMb(TestCase):
    def setUp(self):
        self.dag = cg.DAG(arcs={(0, 1), (1, 2), (3, 2), (2, 4), (4, 5)})

    def test_markov_blanket(self):
        mb = cg.fges_mb(cg.DSeparationScore(self.dag), targets=[1])
        self.assertEqual(mb.nodes, [0, 1, 2, 3])
        self.assertEqual(mb.arcs, {(1, 2), (3, 2)})
        self.assertEqual(mb.edges, {frozenset({0, 1})})

    def test_several_targets(self):
        mb = cg.fges_mb(cg.DSeparationScore(self.dag), targets=[5, 0])
        self.assertEqual(set(mb.nodes), {0, 1, 4, 5})

    def test_search_keeps_full_graph(self):
        search = cg.Fges(cg.DSeparationScore(self.dag))
        mb = search.search(targets=[2])
        self.assertEqual(set(mb.nodes), {1, 2, 3, 4})
        self.assertEqual(set(search.graph.nodes), set(range(6)))
        self.assertIsNotNone(search.model_score)

    def test_deterministic(self):
        rng = np.random.RandomState(2)
        arcs = {(i, j) for i in range(25) for j in range(i+1, 25) if rng.uniform() < .15}
        dag = cg.DAG(nodes=set(range(25)), arcs=arcs)
        for faithfulness_assumed in [True, False]:
            results = []
            for parallelism in [1, 3]:
                search = cg.Fges(
                    cg.DSeparationScore(dag),
                    parallelism=parallelism,
                    faithfulness_assumed=faithfulness_assumed
                )
                results.append((search.search(targets=[3, 11]), search.trace))
            self.assertEqual(results[0], results[1])

    def test_invalid_targets(self):
        score = cg.DSeparationScore(self.dag)
        with self.assertRaises(ValueError):
            cg.fges_mb(score, targets=[])
        with self.assertRaises(ValueError):
            cg.fges_mb(score, targets=[10])


if __name__ == '__main__':
    unittest.main()
