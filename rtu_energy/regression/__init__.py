from .least_squares import Term, FittedModel, parse_terms, fit_model, try_fit_model
