from unittest import TestCase
import unittest
import causalges as cg
from causalges.structure_learning.dag.scheduler import ChunkScheduler, chunk_nodes


class TestChunkNodes(TestCase):
    def test_sizes(self):
        self.assertEqual([len(chunk) for chunk in chunk_nodes(range(45), 2)], [22, 22, 1])
        self.assertEqual([len(chunk) for chunk in chunk_nodes(range(100), 3)], [33, 33, 33, 1])
        self.assertEqual([len(chunk) for chunk in chunk_nodes(range(25), 1)], [25])

    def test_minimum_size(self):
        self.assertEqual(chunk_nodes(range(15), 8), [list(range(10)), list(range(10, 15))])
        self.assertEqual(chunk_nodes([], 4), [])


class TestChunkScheduler(TestCase):
    def test_same_results_in_parallel(self):
        nodes = list(range(57))

        def task(chunk):
            return [(node, node**2) for node in chunk]

        with ChunkScheduler(parallelism=1) as scheduler:
            sequential = scheduler.map_chunks(nodes, task)
        with ChunkScheduler(parallelism=3) as scheduler:
            parallel = scheduler.map_chunks(nodes, task)
            parallel_again = scheduler.map_chunks(nodes, task)
        self.assertEqual(sequential, [(node, node**2) for node in nodes])
        self.assertEqual(parallel, sequential)
        self.assertEqual(parallel_again, sequential)

    def test_without_context(self):
        scheduler = ChunkScheduler(parallelism=2)
        self.assertEqual(scheduler.map_chunks(list(range(30)), lambda chunk: chunk), list(range(30)))

    def test_cancelled(self):
        token = cg.CancellationToken()
        token.cancel()
        with ChunkScheduler(parallelism=1, cancel_token=token) as scheduler:
            self.assertEqual(scheduler.map_chunks(list(range(30)), lambda chunk: chunk), [])

    def test_invalid_parallelism(self):
        with self.assertRaises(ValueError):
            ChunkScheduler(parallelism=0)


if __name__ == '__main__':
    unittest.main()
