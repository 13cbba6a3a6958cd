"""
Back-ends that turn a widget layout into an artifact.

- kotlin: Jetpack Glance ``<Name>Content.generated.kt``
- svelte: Svelte Native ``<Name>View.generated.svelte``
- html: interpreted preview markup (fragment, page and gallery)
"""
