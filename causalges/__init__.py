"""
causalges
=========

causalges is a Python package for learning causal graphs by greedy search over Markov equivalence classes,
using Fast Greedy Equivalence Search (FGES).

Simple Example
--------------

>>> import causalges as cg
>>> import numpy as np
>>> np.random.seed(12312)
>>> x = np.random.normal(size=1000)
>>> z = np.random.normal(size=1000)
>>> y = x + z + np.random.normal(size=1000)
>>> score = cg.GaussianBicScore.from_samples(np.stack([x, y, z], axis=1), variables=['x', 'y', 'z'])
>>> est = cg.fges(score)
>>> sorted(est.arcs)
[('x', 'y'), ('z', 'y')]

License
-------
Released under the 3-Clause BSD license::
   Copyright (C) 2018
   Chandler Squires <chandlersquires18@gmail.com>
"""

from .classes import *
from .utils.scores import *
from .utils.cancellation import CancellationToken
from .structure_learning import *
