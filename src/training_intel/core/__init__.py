"""Engine core: data models, formulas and the four analytical components."""
