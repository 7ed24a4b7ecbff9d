# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single aggregate:
#
#   user_service     — registration, login, profile edit, account deletion
#   post_service     — CRUD + pagination for Post
#   comment_service  — comment create/edit/delete on a Post
#   like_service     — like / unlike a Post
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Absent resources are reported by returning None
# (or False); uniqueness violations raise ``Conflict``.
