# Author: Chandler Squires
from unittest import TestCase
import unittest
import math
import numpy as np
import causalges as cg
from causalges.structure_learning.dag.meek import MeekRules


class ToyScore(cg.DecomposableScore):
    """
    Y gains 2 from parent X and 1 from parent Z. Z gains .5 from parent Y.
    """
    def __init__(self):
        super().__init__(['X', 'Y', 'Z'])

    def local_score(self, node, parents):
        variables = self.variables
        node = variables[node]
        parents = {variables[p] for p in parents}
        if node == 'Y':
            return 2*('X' in parents) + ('Z' in parents)
        if node == 'Z':
            return .5*('Y' in parents)
        return 0.


class DegenerateScore(cg.DSeparationScore):
    """
    D-separation score in which the local score of ``degenerate`` is undefined for every nonempty parent set.
    """
    def __init__(self, dag, degenerate):
        super().__init__(dag)
        self.degenerate = degenerate

    def local_score_diff(self, x, y, parents=()):
        if self.variables[y] == self.degenerate:
            return math.nan
        return super().local_score_diff(x, y, parents)

    def local_score(self, node, parents):
        if self.variables[node] == self.degenerate and len(parents) > 0:
            return math.nan
        return super().local_score(node, parents)


def random_dag(nnodes, density, seed):
    rng = np.random.RandomState(seed)
    arcs = {(i, j) for i in range(nnodes) for j in range(i+1, nnodes) if rng.uniform() < density}
    return cg.DAG(nodes=set(range(nnodes)), arcs=arcs)


def sample_linear_gaussian(dag, nsamples, rng):
    samples = np.zeros((nsamples, len(dag.nodes)))
    for node in dag.topological_sort():
        samples[:, node] = rng.normal(size=nsamples)
        for parent in sorted(dag.parents_of(node)):
            samples[:, node] += rng.uniform(.5, 1.) * samples[:, parent]
    return samples


def equivalence_class(dag):
    """
    Return the arc sets of all DAGs Markov equivalent to ``dag``, reached by repeatedly reversing covered arcs.
    """
    start = frozenset(dag.arcs)
    members = {start}
    stack = [start]
    while stack:
        arcs = stack.pop()
        parents = {node: set() for node in dag.nodes}
        for i, j in arcs:
            parents[j].add(i)
        for i, j in arcs:
            if parents[j] == parents[i] | {i}:
                reversed_arcs = (arcs - {(i, j)}) | {(j, i)}
                if reversed_arcs not in members:
                    members.add(reversed_arcs)
                    stack.append(reversed_arcs)
    return members


def reference_cpdag(dag):
    """
    Return the arcs shared by every DAG in the equivalence class of ``dag``, and the remaining adjacencies.
    """
    compelled = frozenset.intersection(*equivalence_class(dag))
    return set(compelled), dag.skeleton - {frozenset(arc) for arc in compelled}


def on_propagation(search, callback):
    """
    Call ``callback`` with the search graph after every run of the orientation rules.
    """
    propagate = search._meek.orient_implied

    def orient_implied(graph, nodes=None):
        changed = propagate(graph, nodes)
        callback(graph)
        return changed
    search._meek.orient_implied = orient_implied


class TestFgesToy(TestCase):
    def test_trace(self):
        search = cg.Fges(ToyScore())
        est = search.search()
        self.assertEqual(est.arcs, {('X', 'Y'), ('Z', 'Y')})
        self.assertEqual(est.edges, set())
        self.assertEqual(search.trace, [
            cg.Move('insert', 'X', 'Y', frozenset(), 2.),
            cg.Move('insert', 'Z', 'Y', frozenset({'X'}), 1.),
        ])
        self.assertEqual(search.model_score, 3.)
        self.assertGreaterEqual(search.elapsed_time, 0)

    def test_verbose(self):
        with self.assertLogs('causalges.structure_learning.dag.fges', level='INFO') as logs:
            cg.Fges(ToyScore(), verbose=True).search()
        self.assertEqual(len(logs.output), 2)
        self.assertIn('Inserting X --> Y T = [] bump = 2.0000', logs.output[0])
        self.assertIn('Inserting Z --> Y T = [X] bump = 1.0000', logs.output[1])

    def test_repeated_search(self):
        search = cg.Fges(ToyScore())
        first = search.search()
        second = search.search()
        self.assertEqual(first, second)
        self.assertEqual(len(search.trace), 2)

    def test_asymmetric_first_step(self):
        search = cg.Fges(ToyScore(), symmetric_first_step=False)
        est = search.search()
        self.assertEqual(est.skeleton, {frozenset({'Y', 'Z'})})
        self.assertEqual(est.arcs, set())
        self.assertEqual(search.trace, [cg.Move('insert', 'Z', 'Y', frozenset(), 1.)])

    def test_log_edge_bayes_factors(self):
        search = cg.Fges(ToyScore())
        factors = search.log_edge_bayes_factors(cg.DAG(arcs={('X', 'Y'), ('Z', 'Y')}))
        self.assertEqual(factors, {('X', 'Y'): 2., ('Z', 'Y'): 1.})

    def test_functional(self):
        est = cg.fges(ToyScore())
        self.assertEqual(est.arcs, {('X', 'Y'), ('Z', 'Y')})


class TestFgesArguments(TestCase):
    def setUp(self):
        self.score = cg.DSeparationScore(cg.DAG(arcs={(0, 2), (1, 2)}))

    def test_no_score(self):
        with self.assertRaises(ValueError):
            cg.Fges(None)

    def test_parallelism(self):
        for parallelism in [0, -1, 1.5, True]:
            with self.assertRaises(ValueError):
                cg.Fges(self.score, parallelism=parallelism)

    def test_max_degree(self):
        with self.assertRaises(ValueError):
            cg.Fges(self.score, max_degree=-2)
        self.assertEqual(cg.Fges(self.score).max_degree, -1)
        self.assertEqual(cg.Fges(self.score, max_degree=3).max_degree, 3)
        bounded = cg.DSeparationScore(cg.DAG(arcs={(0, 2), (1, 2)}), max_degree=2)
        self.assertEqual(cg.Fges(bounded, max_degree=3).max_degree, 2)
        self.assertEqual(cg.Fges(bounded).max_degree, 2)

    def test_duplicate_variables(self):
        score = cg.MemoizedDecomposableScore(lambda node, parents, suffstat: 0., None, variables=['a', 'a'])
        with self.assertRaises(ValueError):
            cg.Fges(score)

    def test_external_graph_nodes(self):
        with self.assertRaises(ValueError):
            cg.Fges(self.score, external_graph=cg.MixedGraph(nodes=[0, 1]))

    def test_bound_graph_nodes(self):
        with self.assertRaises(ValueError):
            cg.Fges(self.score, bound_graph=cg.MixedGraph(nodes=[0, 1, 2, 3]))

    def test_penalty_discount(self):
        with self.assertRaises(ValueError):
            cg.Fges(self.score, penalty_discount=2.)
        score = cg.GaussianBicScore.from_samples(np.random.RandomState(0).normal(size=(50, 3)))
        cg.Fges(score, penalty_discount=2.)
        self.assertEqual(score.penalty_discount, 2.)

    def test_targets(self):
        search = cg.Fges(self.score)
        with self.assertRaises(ValueError):
            search.search(targets=[])
        with self.assertRaises(ValueError):
            search.search(targets=[7])


class TestFgesOracle(TestCase):
    def assertIsCpdag(self, graph):
        self.assertFalse(graph.has_directed_cycle())
        arcs, edges = reference_cpdag(graph.to_dag())
        self.assertEqual(graph.arcs, arcs)
        self.assertEqual(graph.edges, edges)

    def assertRecovers(self, dag, check_steps=True, **kwargs):
        search = cg.Fges(cg.DSeparationScore(dag), **kwargs)
        if check_steps:
            on_propagation(search, self.assertIsCpdag)
        est = search.search()
        arcs, edges = reference_cpdag(dag)
        self.assertEqual(est.arcs, arcs)
        self.assertEqual(est.edges, edges)
        return est

    def test_reference_cpdag(self):
        arcs, edges = reference_cpdag(cg.DAG(arcs={(0, 2), (1, 2), (2, 3)}))
        self.assertEqual(arcs, {(0, 2), (1, 2), (2, 3)})
        self.assertEqual(edges, set())
        arcs, edges = reference_cpdag(cg.DAG(arcs={(0, 1), (0, 2), (1, 2)}))
        self.assertEqual(arcs, set())
        self.assertEqual(len(edges), 3)

    def test_collider(self):
        self.assertRecovers(cg.DAG(arcs={(0, 2), (1, 2), (2, 3)}))

    def test_chain(self):
        est = self.assertRecovers(cg.DAG(arcs={(0, 1), (1, 2)}))
        self.assertEqual(est.arcs, set())

    def test_diamond(self):
        est = self.assertRecovers(cg.DAG(arcs={(0, 1), (0, 2), (1, 3), (2, 3)}))
        self.assertEqual(est.arcs, {(1, 3), (2, 3)})

    def test_five_nodes(self):
        self.assertRecovers(cg.DAG(arcs={(1, 2), (1, 3), (3, 4), (2, 4), (3, 5)}))

    def test_insertion_subset_avoids_open_path(self):
        # inserting 2->4 with an empty subset would leave the path 4-0-1-3-2 open
        est = self.assertRecovers(cg.DAG(arcs={(0, 1), (0, 4), (1, 3), (2, 3), (2, 4)}))
        self.assertTrue(est.is_adjacent(2, 4))

    def test_random(self):
        for seed in range(25):
            dag = random_dag(6, .4, seed)
            with self.subTest(seed=seed):
                self.assertRecovers(dag)

    def test_random_larger(self):
        for seed in range(5):
            dag = random_dag(8, .3, seed)
            with self.subTest(seed=seed):
                self.assertRecovers(dag, check_steps=False)

    def test_dag_cpdag_matches_reference(self):
        for seed in range(10):
            dag = random_dag(7, .35, seed)
            cpdag = dag.cpdag()
            arcs, edges = reference_cpdag(dag)
            self.assertEqual(cpdag.arcs, arcs)
            self.assertEqual(cpdag.edges, edges)

    def test_unfaithful_mode(self):
        self.assertRecovers(cg.DAG(arcs={(0, 1), (0, 2), (1, 3), (2, 3)}), faithfulness_assumed=False)

    def test_result_is_cpdag(self):
        search = cg.Fges(cg.DSeparationScore(random_dag(12, .25, 4)))
        est = search.search()
        self.assertFalse(est.has_directed_cycle())
        est.to_dag()
        self.assertEqual(MeekRules().orient_implied(est.copy()), set())
        self.assertTrue(all(move.bump > 0 for move in search.trace))

    def test_parallel_matches_sequential(self):
        dag = random_dag(25, .15, 1)
        sequential = cg.Fges(cg.DSeparationScore(dag), parallelism=1)
        parallel = cg.Fges(cg.DSeparationScore(dag), parallelism=4)
        est_sequential = sequential.search()
        est_parallel = parallel.search()
        self.assertEqual(est_sequential, est_parallel)
        self.assertEqual(sequential.trace, parallel.trace)
        self.assertEqual(sequential.model_score, parallel.model_score)


class TestFgesKnowledge(TestCase):
    def setUp(self):
        self.score = cg.DSeparationScore(cg.DAG(arcs={(0, 1), (1, 2)}))

    def test_required(self):
        est = cg.fges(self.score, knowledge=cg.Knowledge(required={(0, 1)}))
        self.assertEqual(est.arcs, {(0, 1), (1, 2)})

    def test_forbidden(self):
        est = cg.fges(self.score, knowledge=cg.Knowledge(forbidden={(1, 0), (2, 1)}))
        self.assertEqual(est.arcs, {(0, 1), (1, 2)})

    def test_forbidden_both_ways(self):
        est = cg.fges(self.score, knowledge=cg.Knowledge(forbidden={(0, 1), (1, 0)}))
        self.assertFalse(est.is_adjacent(0, 1))

    def test_forbidden_seed_edge_removed(self):
        external_graph = cg.MixedGraph(nodes=[0, 1, 2], edges={(0, 1)})
        knowledge = cg.Knowledge(forbidden={(0, 1), (1, 0)})
        with self.assertLogs('causalges.structure_learning.dag.fges', level='WARNING'):
            est = cg.Fges(self.score, knowledge=knowledge, external_graph=external_graph).search()
        self.assertFalse(est.is_adjacent(0, 1))

    def test_required_cycle(self):
        knowledge = cg.Knowledge(required={(0, 2), (2, 0)})
        with self.assertLogs('causalges.structure_learning.dag.fges', level='WARNING') as logs:
            est = cg.fges(self.score, knowledge=knowledge)
        self.assertIn('would create a cycle', logs.output[0])
        self.assertTrue(est.has_arc(0, 2))


class TestFgesOptions(TestCase):
    def test_max_degree(self):
        dag = cg.DAG(arcs={(0, 3), (1, 3), (2, 3)})
        est = cg.fges(cg.DSeparationScore(dag), max_degree=2)
        self.assertLessEqual(est.max_degree, 2)
        self.assertEqual(cg.fges(cg.DSeparationScore(dag)).arcs, {(0, 3), (1, 3), (2, 3)})

    def test_bound_graph(self):
        score = cg.DSeparationScore(cg.DAG(arcs={(0, 2), (1, 2)}))
        bound_graph = cg.MixedGraph(nodes=[0, 1, 2], edges={(0, 2)})
        est = cg.Fges(score, bound_graph=bound_graph).search()
        self.assertEqual(est.skeleton, {frozenset({0, 2})})

    def test_external_graph(self):
        score = cg.DSeparationScore(cg.DAG(arcs={(0, 2), (1, 2)}))
        external_graph = cg.MixedGraph(nodes=[0, 1, 2], edges={(0, 1), (0, 2), (1, 2)})
        search = cg.Fges(score, external_graph=external_graph)
        est = search.search()
        self.assertEqual(est.arcs, {(0, 2), (1, 2)})
        self.assertEqual([move.kind for move in search.trace], ['delete'])
        self.assertEqual(frozenset(search.trace[0][1:3]), frozenset({0, 1}))
        self.assertEqual(external_graph.edges, {frozenset({0, 1}), frozenset({0, 2}), frozenset({1, 2})})

    def test_cancelled(self):
        token = cg.CancellationToken()
        search = cg.Fges(cg.DSeparationScore(cg.DAG(arcs={(0, 2), (1, 2)})), cancel_token=token)
        search.cancel()
        self.assertTrue(token.cancelled)
        est = search.search()
        self.assertEqual(est.num_edges, 0)
        self.assertEqual(search.trace, [])


class TestFgesGaussian(TestCase):
    def setUp(self):
        self.rng = np.random.RandomState(0)

    def test_collider(self):
        n = 2000
        x0 = self.rng.normal(size=n)
        x1 = self.rng.normal(size=n)
        x2 = x0 + x1 + self.rng.normal(size=n)
        score = cg.GaussianBicScore.from_samples(np.stack([x0, x1, x2], axis=1))
        est = cg.fges(score)
        self.assertEqual(est.arcs, {(0, 2), (1, 2)})
        self.assertEqual(est.edges, set())

    def test_chain(self):
        n = 2000
        x0 = self.rng.normal(size=n)
        x1 = x0 + self.rng.normal(size=n)
        x2 = x1 + self.rng.normal(size=n)
        score = cg.GaussianBicScore.from_samples(np.stack([x0, x1, x2], axis=1), variables=['a', 'b', 'c'])
        est = cg.fges(score, parallelism=2)
        self.assertEqual(est.arcs, set())
        self.assertEqual(est.edges, {frozenset({'a', 'b'}), frozenset({'b', 'c'})})

    def test_constant_variable_isolated(self):
        n = 500
        x0 = self.rng.normal(size=n)
        x1 = x0 + self.rng.normal(size=n)
        samples = np.stack([x0, x1, np.ones(n)], axis=1)
        search = cg.Fges(cg.GaussianBicScore.from_samples(samples), faithfulness_assumed=False)
        est = search.search()
        self.assertEqual(est.neighbors_of(2), set())
        self.assertTrue(est.is_adjacent(0, 1))

    def test_total_score_never_decreases(self):
        dag = random_dag(6, .4, 2)
        score = cg.GaussianBicScore.from_samples(sample_linear_gaussian(dag, 2000, self.rng))
        search = cg.Fges(score)
        totals = []
        on_propagation(search, lambda graph: totals.append(cg.score_dag(score, graph.to_dag())))
        search.search()
        self.assertEqual(len(totals), len(search.trace) + 3)
        for before, after in zip(totals, totals[1:]):
            self.assertGreaterEqual(after, before - 1e-6)
        self.assertAlmostEqual(totals[-1], search.model_score)


class TestFgesDegenerateScore(TestCase):
    def test_no_parents_for_undefined_node(self):
        dag = cg.DAG(arcs={(0, 2), (1, 2), (2, 3)})
        search = cg.Fges(DegenerateScore(dag, degenerate=2))
        est = search.search()
        self.assertEqual(est.parents_of(2), set())
        self.assertFalse(any(move.kind == 'insert' and move.b == 2 for move in search.trace))

    def test_deletion_not_oriented_into_undefined_node(self):
        external_graph = cg.MixedGraph(nodes=[0, 1, 2, 3], edges={(0, 1), (0, 2), (1, 2), (2, 3)})
        dag = cg.DAG(arcs={(0, 2), (1, 2), (2, 3)})
        search = cg.Fges(DegenerateScore(dag, degenerate=2), external_graph=external_graph)
        est = search.search()
        self.assertEqual(est.parents_of(2), set())
        self.assertTrue(est.is_adjacent(0, 1))


if __name__ == '__main__':
    unittest.main()
