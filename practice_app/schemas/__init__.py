"""
Pydantic schemas for request/response validation.

Import from the submodules directly: ``schemas.practice`` depends on the
session registry, which in turn loads ``schemas.grading`` through the grading
service, so nothing is re-exported here.
"""
