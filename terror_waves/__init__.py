# terror_waves
# Travel time and border distance of terrorist incidents by Rapoport wave
#
# data_processing/  load, wave split, log(x + 1) transform, response stacking
# models/           joint Gaussian model (PyMC)
# analysis/         DIC / WAIC / LOO, convergence, OLS reference, narrative
# tables/           coefficient tables and the markdown report
# scripts/          command-line entry point

__version__ = "0.1.0"
