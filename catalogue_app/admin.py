from django.contrib import admin

from catalogue_app.models import APICallCounter, CatalogueEntry, OperationalIssue, UserAnnotation


@admin.register(CatalogueEntry)
class CatalogueEntryAdmin(admin.ModelAdmin):
    list_display = ["title", "release_date", "provider_id", "updated_at"]
    search_fields = ["title", "original_title", "provider_id"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["sort_title_lower"]


@admin.register(UserAnnotation)
class UserAnnotationAdmin(admin.ModelAdmin):
    list_display = ["user", "catalogue_entry", "watched", "rating", "favorite", "updated_at"]
    list_filter = ["watched", "favorite"]
    search_fields = ["user__username", "catalogue_entry__title"]
    raw_id_fields = ["catalogue_entry"]


@admin.register(OperationalIssue)
class OperationalIssueAdmin(admin.ModelAdmin):
    list_display = ["name", "task", "severity", "created_at"]
    list_filter = ["severity", "task"]
    search_fields = ["name", "error_message"]
    readonly_fields = ["created_at"]
    ordering = ["-created_at"]
    actions = ["delete_selected", "mark_as_info"]

    @admin.action(description="Downgrade selected issues to info")
    def mark_as_info(self, request, queryset):
        count = queryset.update(severity=OperationalIssue.Severity.INFO)
        self.message_user(request, f"Downgraded {count} issue(s) to info.")


@admin.register(APICallCounter)
class APICallCounterAdmin(admin.ModelAdmin):
    list_display = ["service_name", "date", "call_count", "last_called_at"]
    list_filter = ["service_name"]
    ordering = ["-date"]
