
from __future__ import annotations
from typing import Generator
from sorokit.errors import LimitExceeded, MalformedInput
from sorokit.host import AuthorizedInvocation
from sorokit.network import Parameters
from sorokit.xdr import Hash, SCVAL_LIMIT, SCVal


def walk(tree: AuthorizedInvocation) -> Generator[AuthorizedInvocation, None, None]:
    """
    Yield every node of `tree`, depth first, parents before children. A
    node reached twice makes the tree shared or cyclic and is rejected.
    """
    seen: set[int] = set()
    stack = [tree]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            raise MalformedInput('Invocation node is shared or cyclic.')
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.sub_invocations))


def _depth(tree: AuthorizedInvocation) -> int:
    depth = 0
    level = [tree]
    while level:
        depth += 1
        level = [c for n in level for c in n.sub_invocations]
    return depth


def validate(tree: AuthorizedInvocation, parameters: Parameters) -> None:
    if not isinstance(tree, AuthorizedInvocation):
        raise MalformedInput('Invalid invocation tree.')
    count = 0
    for node in walk(tree):
        count += 1
        if count > parameters.max_invocations:
            raise LimitExceeded(
                f'Invocation tree exceeds {parameters.max_invocations} nodes.'
            )
        if len(node.args) > SCVAL_LIMIT:
            raise LimitExceeded('Too many invocation arguments.')
    if parameters.max_depth is not None and _depth(tree) > parameters.max_depth:
        raise LimitExceeded(
            f'Invocation tree exceeds depth {parameters.max_depth}.'
        )


class InvocationBuilder(object):
    """
    Assembles the authorization tree of one top-level invocation. Children
    may be appended to any node until `build()` freezes the tree.
    """

    def __init__(self,
        contract_id: Hash,
        function_name: str,
        args: list[SCVal] | None = None,
        parameters: Parameters | None = None
    ):
        self.root = AuthorizedInvocation(contract_id, function_name, args)
        self.parameters = parameters or Parameters()
        self._nodes: set[int] = {id(self.root)}
        self._frozen = False

    def add(self,
        parent: AuthorizedInvocation,
        contract_id: Hash,
        function_name: str,
        args: list[SCVal] | None = None
    ) -> AuthorizedInvocation:
        if self._frozen:
            raise MalformedInput('Invocation tree is frozen.')
        if id(parent) not in self._nodes:
            raise MalformedInput('Parent is not a node of this tree.')
        if len(self._nodes) >= self.parameters.max_invocations:
            raise LimitExceeded(
                f'Invocation tree exceeds {self.parameters.max_invocations} nodes.'
            )
        node = AuthorizedInvocation(contract_id, function_name, args)
        parent.sub_invocations.append(node)
        self._nodes.add(id(node))
        return node

    def build(self) -> AuthorizedInvocation:
        validate(self.root, self.parameters)
        self._frozen = True
        return self.root
