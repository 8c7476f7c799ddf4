from django import forms
from django.contrib import admin

from core.errors import HierarchyCycleError

from .models import Branch, Division, Position
from .services.hierarchy import assert_can_reparent
from .services.structure import load_nodes, save_node


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "city", "province")
    search_fields = ("code", "name")


class HierarchyAdminForm(forms.ModelForm):
    """Rejects a parent that sits below the node being edited."""

    def clean(self):
        cleaned = super().clean()
        parent = cleaned.get("parent")
        if self.instance.pk is not None and parent is not None:
            try:
                assert_can_reparent(load_nodes(self._meta.model), self.instance.pk, parent.pk)
            except HierarchyCycleError as exc:
                self.add_error("parent", exc.message)
        return cleaned


class HierarchyAdmin(admin.ModelAdmin):
    form = HierarchyAdminForm
    readonly_fields = ("level",)

    def save_model(self, request, obj, form, change):
        save_node(obj)


@admin.register(Division)
class DivisionAdmin(HierarchyAdmin):
    list_display = ("id", "code", "name", "branch", "parent", "level", "status")
    list_filter = ("branch", "status", "level")
    search_fields = ("code", "name")


@admin.register(Position)
class PositionAdmin(HierarchyAdmin):
    list_display = ("id", "code", "title", "division", "parent", "level", "status")
    list_filter = ("division", "status", "level")
    search_fields = ("code", "title")
