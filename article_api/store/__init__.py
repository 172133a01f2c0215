# Store package.
#
# Each module exposes a focused set of async functions that own the SQL
# for one entity family:
#
#   user_store: users, follow relation
#   article_store: articles, tags, favorite relation + counter
#   comment_store: comments scoped to an article
#
# All store functions accept an AsyncSession as their first argument so
# that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Functions flush but never commit.
