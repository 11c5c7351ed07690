# Loading, wave split, log transform and response stacking
