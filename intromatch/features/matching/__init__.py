"""
Matching feature package.

Keeps every layer of introduction matching co-located: domain models,
the scoring and confidence pipeline, generation, repositories, the
explanation collaborator and API routers.
"""
