"""
Chains package

Everything needed to compile a list of prompt steps into an endpoint and
replay it:

- ``cache``: in-process chain cache
- ``store``: durable, owner-namespaced chain storage
- ``repository``: id -> chain lookup across cache and store
- ``executor``: sequential step runner
- ``routes``: HTTP surface
"""
