from django.conf import settings
from django.db import models

from .services.hierarchy import HierarchyNode


class Branch(models.Model):
    code = models.CharField(max_length=16, unique=True)
    name = models.CharField(max_length=255)
    city = models.CharField(max_length=128, blank=True, default="")
    province = models.CharField(max_length=128, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.code} ({self.name})"


class HierarchyModel(models.Model):
    """
    Common shape of a self-referencing organization tree.

    `level` is derived (root = 0, child = parent.level + 1). It is set by
    `organizations.services.structure`, never by `save()`.
    """
    STATUS_CHOICES = [("active", "Active"), ("inactive", "Inactive")]

    code = models.CharField(max_length=32, unique=True)
    description = models.TextField(blank=True, default="")
    parent = models.ForeignKey("self", null=True, blank=True, on_delete=models.PROTECT, related_name="children")
    level = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="active")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["level", "code"]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        return super().save(*args, **kwargs)

    def as_node(self) -> HierarchyNode:
        return HierarchyNode(id=self.pk, parent_id=self.parent_id, level=self.level, data=self.node_data())

    def node_data(self) -> dict:
        return {"code": self.code, "status": self.status}


class Division(HierarchyModel):
    name = models.CharField(max_length=255)
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="divisions")
    head = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")

    class Meta(HierarchyModel.Meta):
        indexes = [models.Index(fields=["branch", "parent"], name="division_branch_parent_idx")]

    def node_data(self) -> dict:
        return {**super().node_data(), "name": self.name, "branch_id": self.branch_id}

    def __str__(self):
        return f"{self.code} - {self.name}"


class Position(HierarchyModel):
    title = models.CharField(max_length=255)
    division = models.ForeignKey(Division, on_delete=models.PROTECT, related_name="positions")
    responsibilities = models.JSONField(default=list, blank=True)

    class Meta(HierarchyModel.Meta):
        indexes = [models.Index(fields=["division", "parent"], name="position_division_parent_idx")]

    def node_data(self) -> dict:
        return {**super().node_data(), "title": self.title, "division_id": self.division_id}

    def __str__(self):
        return f"{self.code} - {self.title}"
