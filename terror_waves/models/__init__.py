# Joint Gaussian model for the stacked responses
