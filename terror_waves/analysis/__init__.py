# Fit statistics, convergence checks, OLS reference fits and narrative text
