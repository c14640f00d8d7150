"""Fixed catalog of shell scripts and files rendered for repository operations.

Every script is keyed by ``ScriptOperation`` and filled with ``str.format``
from a ``ScriptBindings`` instance plus node configuration. Bindings are
produced internally, except the source URL, which is shell-quoted.
"""

import shlex
from enum import Enum
from typing import Dict, NamedTuple, Tuple

from ..configuration import RepositoryConfig
from .models import ScriptBindings


class ScriptOperation(Enum):
    INIT = "init"
    LOCAL_CLONE = "local-clone"
    URL_CLONE = "url-clone"
    DEPLOY = "deploy"
    DEPLOY_SUBMODULES = "deploy-submodules"
    DESCRIPTION = "description"
    GITCONFIG = "gitconfig"
    PRE_RECEIVE = "pre-receive"
    POST_RECEIVE = "post-receive"


class ScriptTemplate(NamedTuple):
    text: str
    required: Tuple[str, ...]


GIT_INIT = """\
set -xe;
git init;
git config user.email "{builder_email}";
git config user.name "{builder_name}";
git add -f .;
git commit -a -m "Creating template"
"""

GIT_LOCAL_CLONE = """\
set -xe;
git clone --bare --no-hardlinks template {application_name}.git;
GIT_DIR=./{application_name}.git git repack
"""

GIT_URL_CLONE = """\
set -xe;
git clone --bare --no-hardlinks {url} {application_name}.git;
GIT_DIR=./{application_name}.git git repack
"""

GIT_DEPLOY = """\
set -xe;
shopt -s dotglob;
rm -rf {target_dir}/*;
git archive --format=tar HEAD | (cd {target_dir} && tar --warning=no-timestamp -xf -);
"""

# $displaypath is expanded by `git submodule foreach` relative to the top level
GIT_DEPLOY_SUBMODULES = """\
set -xe;
git clone {repo_path} {cache_dir};
pushd {cache_dir};
git submodule update --init --recursive;
git submodule foreach --recursive 'git archive --format=tar HEAD | (cd {target_dir}/$displaypath && tar --warning=no-timestamp -xf -)';
popd;
"""

GIT_DESCRIPTION = """
{cartridge_name} application {application_name}
"""

GIT_CONFIG = """\
[user]
  name = {system_user_name}
[gc]
  auto = {gc_auto}
"""

PRE_RECEIVE = """\
{pre_receive_command}
"""

POST_RECEIVE = """\
{post_receive_command}
"""

CATALOG: Dict[ScriptOperation, ScriptTemplate] = {
    ScriptOperation.INIT: ScriptTemplate(GIT_INIT, ()),
    ScriptOperation.LOCAL_CLONE: ScriptTemplate(GIT_LOCAL_CLONE, ("application_name",)),
    ScriptOperation.URL_CLONE: ScriptTemplate(GIT_URL_CLONE, ("application_name", "url")),
    ScriptOperation.DEPLOY: ScriptTemplate(GIT_DEPLOY, ("target_dir",)),
    ScriptOperation.DEPLOY_SUBMODULES: ScriptTemplate(
        GIT_DEPLOY_SUBMODULES, ("repo_path", "cache_dir", "target_dir")
    ),
    ScriptOperation.DESCRIPTION: ScriptTemplate(GIT_DESCRIPTION, ("application_name",)),
    ScriptOperation.GITCONFIG: ScriptTemplate(GIT_CONFIG, ()),
    ScriptOperation.PRE_RECEIVE: ScriptTemplate(PRE_RECEIVE, ()),
    ScriptOperation.POST_RECEIVE: ScriptTemplate(POST_RECEIVE, ()),
}


class ScriptRenderer:
    """Renders catalog entries; pure, holds only node configuration."""

    def __init__(self, config: RepositoryConfig):
        self.config = config

    def render(self, operation: ScriptOperation, bindings: ScriptBindings) -> str:
        """Produce the literal text for ``operation``.

        Raises:
            ValueError: A binding the template needs is missing
        """
        template = CATALOG[operation]
        values = {k: "" if v is None else v for k, v in bindings.model_dump().items()}
        missing = [name for name in template.required if not values.get(name)]
        if missing:
            raise ValueError(
                f"Missing bindings for {operation.value} script: {', '.join(missing)}"
            )

        if values["url"]:
            values["url"] = shlex.quote(values["url"])

        values.update(
            builder_email=self.config.builder_email,
            builder_name=self.config.builder_name,
            system_user_name=self.config.system_user_name,
            gc_auto=self.config.gc_auto,
            pre_receive_command=self.config.pre_receive_command,
            post_receive_command=self.config.post_receive_command,
        )
        return template.text.format(**values)
