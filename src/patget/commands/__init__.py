"""Built-in CLI sub-commands for patget.

* :mod:`~patget.commands.token` -- ``token``, ``path`` and ``clear``,
  registered directly on the root app.
* :mod:`~patget.commands.config` -- the ``config`` group for viewing and
  modifying settings.
"""
