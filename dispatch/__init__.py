"""
Dispatch storage core.

Uniform data access for people, branches, shifts and route assignments over
interchangeable backends (local JSON documents, a relational database, or a
hybrid relational + blob storage split).
"""
