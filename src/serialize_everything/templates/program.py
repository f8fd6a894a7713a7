from mako.template import Template

# Module rendered for every document at decode time. Executing it defines a
# single function taking the environment and the options object; nothing else
# from the outside reaches reconstructed code.
PROGRAM_TEMPLATE = Template(
	"""import builtins as ${vp}builtins
import datetime as ${vp}datetime
import decimal as ${vp}decimal
import fractions as ${vp}fractions
import re as ${vp}re

from serialize_everything import runtime as ${vp}rt


def ${vp}program(${vp}context, ${vp}options):
% for name in names:
	${name} = ${vp}context[${repr(name)}]
% endfor
	${vp}result = (
		${source}
	)
	${vp}result = ${vp}rt.restore_containers(${vp}result, arrays=${arrays})
% if patches:
	${vp}patches = [
% for path, ref in patches:
		(${repr(path)}, ${ref}),
% endfor
	]
	${vp}result = ${vp}rt.apply_patches(${vp}result, ${vp}patches, ${vp}options.get)
% endif
	return ${vp}result
"""
)
